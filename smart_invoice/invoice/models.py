"""Domain records for delivery invoices, vendors, and form errors."""

import uuid
from dataclasses import asdict, dataclass, field, fields
from enum import StrEnum
from typing import Any


class Section(StrEnum):
    """The two ordered line-item lists of an invoice."""

    DELIVERIES = "deliveries"
    RETURNS = "returns"


class SignatureType(StrEnum):
    """Parties that sign an invoice."""

    VENDOR = "vendor"
    RECEIVER = "receiver"


def new_item_id() -> str:
    """Return a fresh random line-item identifier."""
    return str(uuid.uuid4())


@dataclass
class LineItem:
    """A single quantity/cost/description row."""

    quantity: float = 1
    description: str = ""
    cost: float = 0
    total: float = 0
    id: str = field(default_factory=new_item_id)

    def recalculate(self) -> None:
        """Set ``total`` to ``quantity * cost``."""
        self.total = self.quantity * self.cost

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LineItem":
        """Build an item from a mapping, recomputing its total."""
        item = cls(
            quantity=to_number(data.get("quantity", 0)),
            description=str(data.get("description") or ""),
            cost=to_number(data.get("cost", 0)),
            id=str(data.get("id") or new_item_id()),
        )
        item.recalculate()
        return item


@dataclass
class InvoiceData:
    """Header fields plus the deliveries and returns lists."""

    date: str
    invoice_number: str
    delivery_location: str
    vendor_name: str = ""
    vendor_email: str = ""
    vendor_signer_name: str = ""
    receiver_signer_name: str = ""
    deliveries: list[LineItem] = field(default_factory=list)
    returns: list[LineItem] = field(default_factory=list)

    def items(self, section: Section) -> list[LineItem]:
        """Return the live list for a section."""
        return self.deliveries if section == Section.DELIVERIES else self.returns

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InvoiceData":
        """Build an invoice from a mapping such as a saved JSON draft.

        Unknown keys are ignored and line-item totals are recomputed.
        """
        header_names = {f.name for f in fields(cls)} - {"deliveries", "returns"}
        header = {k: str(v) for k, v in data.items() if k in header_names and v is not None}
        header.setdefault("date", "")
        header.setdefault("invoice_number", "")
        header.setdefault("delivery_location", "")
        return cls(
            **header,
            deliveries=[LineItem.from_dict(i) for i in data.get("deliveries") or []],
            returns=[LineItem.from_dict(i) for i in data.get("returns") or []],
        )


@dataclass
class FormErrors:
    """Per-field validation messages; ``None`` means the field is fine."""

    vendor_name: str | None = None
    vendor_email: str | None = None
    invoice_number: str | None = None
    date: str | None = None

    def as_dict(self) -> dict[str, str]:
        """Return only the fields that carry an error."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @property
    def is_empty(self) -> bool:
        return not self.as_dict()


@dataclass
class Vendor:
    """A vendor directory entry."""

    name: str
    email: str


def to_number(value: Any) -> float:
    """Coerce a loosely typed number, treating junk as zero."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return int(number) if number.is_integer() else number
