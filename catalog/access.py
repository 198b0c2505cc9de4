"""
Privilege checks for catalog writes.
"""

from models.api import Actor

from .errors import PermissionDenied


def require_admin(actor: Actor | None, action: str) -> Actor:
    if actor is None:
        raise PermissionDenied(f"Authentication required to {action}")
    if not actor.is_admin:
        raise PermissionDenied(f"Admin role required to {action}")
    return actor
