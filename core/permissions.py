"""Role to writable-collection table used by the dashboard."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Optional

from core.errors import Forbidden

ALL_COLLECTIONS = "*"

ROLE_WRITABLE: Dict[str, FrozenSet[str]] = {
    "Admin": frozenset({ALL_COLLECTIONS}),
    "Pengurus": frozenset({"Inventory", "Transactions"}),
}


def can_write(role: Optional[str], collection: str) -> bool:
    allowed = ROLE_WRITABLE.get(role or "", frozenset())
    return ALL_COLLECTIONS in allowed or collection in allowed


def writable_collections(role: Optional[str], collections: Iterable[str]) -> List[str]:
    return [name for name in collections if can_write(role, name)]


def require_write(role: Optional[str], collection: str) -> None:
    """Raise :class:`Forbidden` when ``role`` may not write ``collection``."""

    if not can_write(role, collection):
        raise Forbidden(f"Role {role or 'unknown'} may not modify {collection}")


__all__ = ["ROLE_WRITABLE", "can_write", "require_write", "writable_collections"]
