# Overview: Role names and the role -> capability table.
# This table is the single source of truth for item authorization.

from .capabilities import Capability


class Role:
    """Authorization tiers. Unknown values are treated as USER."""
    USER = "User"
    ADMIN = "Admin"
    SUPERUSER = "SuperUser"


DEFAULT_ROLE = Role.USER

# SuperUser may edit (including quantity changes) but never add or delete.
DEFAULT_ROLE_CAPABILITIES = {
    Role.USER: frozenset({Capability.VIEW}),
    Role.ADMIN: frozenset({
        Capability.VIEW,
        Capability.ADD,
        Capability.EDIT,
        Capability.DELETE,
    }),
    Role.SUPERUSER: frozenset({Capability.VIEW, Capability.EDIT}),
}
