"""Ownership and role checks run between authentication and any write."""

from typing import Optional

from models.user import User
from services.errors import Forbidden

ADMIN_ROLE = "admin"


def can_mutate(actor: User, owner_id: Optional[str]) -> bool:
    """True when ``actor`` owns the resource or holds the admin role."""
    if actor is None:
        return False
    if actor.role == ADMIN_ROLE:
        return True
    return owner_id is not None and str(actor.id) == str(owner_id)


def authorize(actor: User, owner_id: Optional[str], action: str = "modify this resource") -> None:
    if not can_mutate(actor, owner_id):
        raise Forbidden(f"You are not authorized to {action}.")


def require_role(actor: User, role: str = ADMIN_ROLE) -> None:
    if actor is None or actor.role != role:
        raise Forbidden("Access denied. Admins only." if role == ADMIN_ROLE else "Access denied.")
