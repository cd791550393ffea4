# Overview: Pure lookups over the role -> capability table.

from ..validation import PermissionDeniedError
from .capabilities import ITEM_ACTIONS, GLOBAL_ACTIONS
from .roles import DEFAULT_ROLE, DEFAULT_ROLE_CAPABILITIES


def normalize_role(role):
    """Map a role string onto its canonical name (case-insensitive), defaulting to User."""
    if not isinstance(role, str):
        return DEFAULT_ROLE
    wanted = role.strip().lower()
    for name in DEFAULT_ROLE_CAPABILITIES:
        if name.lower() == wanted:
            return name
    return DEFAULT_ROLE


def capabilities(role):
    """Get the capability set for a role. Unrecognized roles get {View}."""
    return DEFAULT_ROLE_CAPABILITIES[normalize_role(role)]


def has_capability(role, capability):
    """Check if a role grants a capability."""
    return capability in capabilities(role)


def require_capability(role, capability):
    """Raise PermissionDeniedError unless the role grants the capability."""
    if not has_capability(role, capability):
        raise PermissionDeniedError(
            f"Role {normalize_role(role)} lacks capability: {capability}"
        )


def item_actions(caps):
    """Per-item affordances the display layer may expose."""
    return frozenset(caps) & ITEM_ACTIONS


def global_actions(caps):
    """List-level affordances (e.g. the add button)."""
    return frozenset(caps) & GLOBAL_ACTIONS
