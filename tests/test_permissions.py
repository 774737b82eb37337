from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core import permissions
from core.errors import Forbidden
from core.records import collections_for


def test_admin_writes_everything() -> None:
    names = list(collections_for())

    assert permissions.writable_collections("Admin", names) == names


def test_pengurus_writes_inventory_and_transactions() -> None:
    names = list(collections_for())

    assert permissions.writable_collections("Pengurus", names) == ["Transactions", "Inventory"]
    assert not permissions.can_write("Pengurus", "Members")


@pytest.mark.parametrize("role", ["Anggota", "", None, "admin"])
def test_other_roles_are_read_only(role) -> None:
    assert permissions.writable_collections(role, collections_for()) == []
    with pytest.raises(Forbidden):
        permissions.require_write(role, "Products")
