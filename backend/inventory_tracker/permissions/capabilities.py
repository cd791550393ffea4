# Overview: Capability constants for item actions.


class Capability:
    """Actions a role may be permitted to perform on inventory items."""
    VIEW = "View"
    ADD = "Add"
    EDIT = "Edit"
    DELETE = "Delete"


ALL_CAPABILITIES = frozenset({
    Capability.VIEW,
    Capability.ADD,
    Capability.EDIT,
    Capability.DELETE,
})

# Actions that apply to a single listed item vs. to the list as a whole
ITEM_ACTIONS = frozenset({Capability.VIEW, Capability.EDIT, Capability.DELETE})
GLOBAL_ACTIONS = frozenset({Capability.ADD})
