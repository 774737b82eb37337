"""Per-collection record operations for the koperasi spreadsheet."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from core.errors import InvalidPayload, NotFound, OperationNotAllowed
from core.row_store import RowStore, sheet_position
from core.sheets_client import WorksheetMissingError

logger = logging.getLogger(__name__)

RecordValues = Union[Sequence[Any], Mapping[str, Any]]

LOW_STOCK_THRESHOLD = 10


@dataclass(frozen=True)
class Collection:
    """Describes one worksheet-backed collection."""

    name: str
    headers: Tuple[str, ...]
    id_field: Optional[str] = None
    id_prefix: Optional[str] = None

    @property
    def append_only(self) -> bool:
        return self.id_field is None


MEMBERS = Collection("Members", ("ID", "Name", "Email", "Phone", "JoinDate"), "ID", "MBR-")
SAVINGS = Collection("Savings", ("MemberID", "Type", "Amount", "Date"))
PRODUCTS = Collection("Products", ("ID", "Name", "Price", "Category", "Stock"), "ID", "PRD-")
TRANSACTIONS = Collection(
    "Transactions",
    ("ID", "MemberID", "Type", "Amount", "Date", "Description"),
    "ID",
    "TX-",
)
INVENTORY = Collection("Inventory", ("ProductID", "Quantity", "LastUpdated"), "ProductID")
USERS = Collection("Users", ("Email", "Password", "Role", "Name"), "Email")
USERS_WITHOUT_PASSWORD = Collection("Users", ("Email", "Role", "Name"), "Email")


def collections_for(with_passwords: bool = True) -> Dict[str, Collection]:
    """Return the six collections keyed by name, in creation order."""

    users = USERS if with_passwords else USERS_WITHOUT_PASSWORD
    ordered = (MEMBERS, SAVINGS, PRODUCTS, TRANSACTIONS, INVENTORY, users)
    return {collection.name: collection for collection in ordered}


DEMO_DATA: Dict[str, List[List[str]]] = {
    "Members": [
        ["MBR-1001", "Budi Santoso", "budi@email.com", "08123456789", "01/01/2024"],
        ["MBR-1002", "Siti Aminah", "siti@email.com", "08129876543", "15/01/2024"],
        ["MBR-1003", "Agus Setiawan", "agus@email.com", "08131122334", "02/02/2024"],
    ],
    "Savings": [
        ["MBR-1001", "Simpanan Pokok", "500000", "01/01/2024"],
        ["MBR-1001", "Simpanan Wajib", "50000", "01/02/2024"],
        ["MBR-1002", "Simpanan Pokok", "500000", "15/01/2024"],
    ],
    "Products": [
        ["PRD-2001", "Beras Premium 5kg", "75000", "Sembako", "50"],
        ["PRD-2002", "Minyak Goreng 2L", "35000", "Sembako", "30"],
        ["PRD-2003", "Gula Pasir 1kg", "16000", "Sembako", "100"],
        ["PRD-2004", "Sabun Mandi", "5000", "Kebutuhan Rumah", "5"],
    ],
    "Transactions": [
        ["TX-3001", "MBR-1001", "Simpanan", "500000", "01/01/2024", "Setoran Awal"],
        ["TX-3002", "MBR-1002", "Simpanan", "500000", "15/01/2024", "Setoran Awal"],
        ["TX-3003", "MBR-1001", "Belanja", "75000", "05/02/2024", "Pembelian Beras"],
    ],
    "Inventory": [
        ["PRD-2001", "50", "05/02/2024"],
        ["PRD-2002", "30", "05/02/2024"],
        ["PRD-2003", "100", "05/02/2024"],
    ],
    "Users": [
        ["admin@koperasi.com", "admin123", "Admin", "Administrator"],
        ["staff@koperasi.com", "staff123", "Pengurus", "Staff Koperasi"],
        ["budi@email.com", "budi123", "Anggota", "Budi Santoso"],
    ],
}


def random_suffix() -> str:
    return str(random.randint(1000, 9999))


def _as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` when it is not one."""

    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _is_low_stock(value: Any) -> bool:
    stock = _as_number(value)
    return stock is not None and stock < LOW_STOCK_THRESHOLD


class RecordService:
    """CRUD, schema and seed operations for the koperasi collections.

    Parameters
    ----------
    store:
        The row store bound to the target spreadsheet.
    with_passwords:
        Whether the Users collection carries a Password column. Only the
        session-credential deployment stores passwords.
    suffix_factory:
        Produces the random part of generated identifiers.
    """

    def __init__(
        self,
        store: RowStore,
        *,
        with_passwords: bool = True,
        suffix_factory: Callable[[], str] = random_suffix,
    ) -> None:
        self._store = store
        self._with_passwords = with_passwords
        self._collections = collections_for(with_passwords)
        self._suffix_factory = suffix_factory

    @property
    def collections(self) -> Dict[str, Collection]:
        return dict(self._collections)

    def collection(self, name: str) -> Collection:
        try:
            return self._collections[name]
        except KeyError:
            raise NotFound(f"Unknown collection: {name}") from None

    def ping(self) -> None:
        self._store.client.health_check()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def list(self, name: str) -> List[Dict[str, str]]:
        collection = self.collection(name)
        return self._store.list(collection.name)

    def has_rows(self, name: str) -> bool:
        """Return whether the collection's worksheet exists and holds data rows."""

        try:
            return bool(self.list(name))
        except WorksheetMissingError:
            return False

    def new_id(self, name: str) -> str:
        collection = self.collection(name)
        if not collection.id_prefix:
            raise OperationNotAllowed(f"{collection.name} does not generate identifiers")
        return f"{collection.id_prefix}{self._suffix_factory()}"

    def create(self, name: str, values: RecordValues) -> List[str]:
        """Append one record and return the row as written.

        Duplicate identifiers are not detected. A blank identifier on a
        collection with an ID prefix is replaced by a generated one.
        """

        collection = self.collection(name)
        row = self._row_values(collection, values)
        if collection.id_prefix and (not row or not row[0]):
            generated = self.new_id(collection.name)
            row = [generated] + row[1:] if row else [generated]
        self._store.append(collection.name, row)
        logger.info("Appended row to %s", collection.name)
        return row

    def update_by_id(self, name: str, record_id: str, values: RecordValues) -> List[str]:
        collection = self._mutable(name)
        row = self._row_values(collection, values)
        offset = self._store.find_row_index(collection.name, record_id)
        self._store.replace(collection.name, sheet_position(offset), row)
        logger.info("Updated %s/%s", collection.name, record_id)
        return row

    def delete_by_id(self, name: str, record_id: str) -> None:
        collection = self._mutable(name)
        offset = self._store.find_row_index(collection.name, record_id)
        self._store.delete_row(collection.name, sheet_position(offset))
        logger.info("Deleted %s/%s", collection.name, record_id)

    def _mutable(self, name: str) -> Collection:
        collection = self.collection(name)
        if collection.append_only:
            raise OperationNotAllowed(f"{collection.name} is append-only")
        return collection

    @staticmethod
    def _row_values(collection: Collection, values: RecordValues) -> List[str]:
        if isinstance(values, Mapping):
            unknown = [key for key in values if key not in collection.headers]
            if unknown:
                raise InvalidPayload(f"Unknown fields for {collection.name}: {', '.join(sorted(unknown))}")
            values = [values.get(header) for header in collection.headers]
        elif isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise InvalidPayload("values must be a list of cell values")
        return ["" if value is None else str(value) for value in values]

    # ------------------------------------------------------------------
    # Schema and demo data
    # ------------------------------------------------------------------
    def ensure_schema(self) -> List[str]:
        """Create missing worksheets and their header rows.

        Existing worksheets are left untouched, even when their header differs
        from the expected one. Returns the titles that were created.
        """

        existing = set(self._store.titles())
        missing = [name for name in self._collections if name not in existing]
        if not missing:
            return []
        self._store.add_worksheets(missing)
        for name in missing:
            self._store.write_header(name, self._collections[name].headers)
        logger.info("Created worksheets: %s", ", ".join(missing))
        return missing

    def seed_demo_data(self) -> List[str]:
        self.ensure_schema()
        updated: List[str] = []
        for name, rows in DEMO_DATA.items():
            if name == USERS.name and not self._with_passwords:
                rows = [[row[0]] + row[2:] for row in rows]
            self._store.write_block(name, rows)
            updated.append(name)
        logger.info("Seeded demo data into %s", ", ".join(updated))
        return updated

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def summary(self) -> Dict[str, Any]:
        members = self.list(MEMBERS.name)
        savings = self.list(SAVINGS.name)
        products = self.list(PRODUCTS.name)
        amounts = (_as_number(row.get("Amount")) for row in savings)
        total_savings = sum((amount for amount in amounts if amount is not None), 0.0)
        if not math.isfinite(total_savings):
            logger.warning("Savings total overflowed, reporting 0")
            total_savings = 0.0
        low_stock = [row for row in products if _is_low_stock(row.get("Stock"))]
        return {
            "memberCount": len(members),
            "totalSavings": int(total_savings) if total_savings.is_integer() else total_savings,
            "productCount": len(products),
            "lowStock": low_stock,
        }


__all__ = [
    "Collection",
    "DEMO_DATA",
    "LOW_STOCK_THRESHOLD",
    "RecordService",
    "collections_for",
    "random_suffix",
]
