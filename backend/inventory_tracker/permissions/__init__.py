# Overview: Authorization policy package.
# Re-exports all public APIs so callers import from one place.

from .capabilities import Capability, ALL_CAPABILITIES, ITEM_ACTIONS, GLOBAL_ACTIONS
from .roles import Role, DEFAULT_ROLE, DEFAULT_ROLE_CAPABILITIES
from .helpers import (
    normalize_role,
    capabilities,
    has_capability,
    require_capability,
    item_actions,
    global_actions,
)

__all__ = [
    "Capability",
    "ALL_CAPABILITIES",
    "ITEM_ACTIONS",
    "GLOBAL_ACTIONS",
    "Role",
    "DEFAULT_ROLE",
    "DEFAULT_ROLE_CAPABILITIES",
    "normalize_role",
    "capabilities",
    "has_capability",
    "require_capability",
    "item_actions",
    "global_actions",
]
