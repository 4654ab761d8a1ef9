"""In-memory invoice form state.

An ``InvoiceForm`` is one draft being filled in: header edits, line-item
edits with total recalculation, derived subtotals, and merging of OCR
results. Totals are always recomputed from the items, never stored.
"""

import random
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from smart_invoice.utils.config import FormConfig
from smart_invoice.utils.logger import get_logger
from smart_invoice.vendors.sheets import VendorDirectory

from .models import FormErrors, InvoiceData, LineItem, Section, to_number

logger = get_logger(__name__)

HEADER_FIELDS = (
    "date",
    "invoice_number",
    "delivery_location",
    "vendor_name",
    "vendor_email",
    "vendor_signer_name",
    "receiver_signer_name",
)
ITEM_FIELDS = ("quantity", "cost", "description")


def generate_invoice_number(prefix: str = "INV", now: datetime | None = None) -> str:
    """Return a number like ``INV-250114-0042`` (UTC date, four random digits)."""
    now = now or datetime.now(timezone.utc)
    return f"{prefix}-{now.strftime('%y%m%d')}-{random.randint(0, 9999):04d}"


def new_invoice(config: FormConfig | None = None, today: date | None = None) -> InvoiceData:
    """Return a blank invoice dated today with a fresh invoice number."""
    config = config or FormConfig()
    today = today or datetime.now(timezone.utc).date()
    return InvoiceData(
        date=today.isoformat(),
        invoice_number=generate_invoice_number(config.invoice_prefix),
        delivery_location=config.default_location,
    )


def section_total(items: list[LineItem]) -> float:
    """Sum of the line totals of one section."""
    return sum(item.total for item in items)


@dataclass
class Totals:
    """Derived money figures of an invoice."""

    delivery_total: float
    returns_total: float
    net_total: float


def compute_totals(data: InvoiceData) -> Totals:
    """Compute subtotals and net total (deliveries minus returns)."""
    delivery_total = section_total(data.deliveries)
    returns_total = section_total(data.returns)
    return Totals(delivery_total, returns_total, delivery_total - returns_total)


@dataclass
class InvoiceForm:
    """A draft invoice plus its pending field errors.

    Args:
        data: Current invoice values.
        vendors: Loaded vendor directory used for e-mail auto-fill.
        config: Form defaults (prefix, locations).
    """

    data: InvoiceData
    vendors: VendorDirectory = field(default_factory=VendorDirectory)
    config: FormConfig = field(default_factory=FormConfig)
    errors: FormErrors = field(default_factory=FormErrors)

    @classmethod
    def blank(cls, vendors: VendorDirectory | None = None, config: FormConfig | None = None) -> "InvoiceForm":
        config = config or FormConfig()
        return cls(
            data=new_invoice(config),
            vendors=vendors if vendors is not None else VendorDirectory(),
            config=config,
        )

    def set_field(self, name: str, value: str) -> None:
        """Update one header field.

        Typing a vendor name that matches a loaded vendor (ignoring case)
        fills in that vendor's e-mail. Editing a field clears its error.

        Raises:
            KeyError: If ``name`` is not a header field.
        """
        if name not in HEADER_FIELDS:
            raise KeyError(name)
        setattr(self.data, name, value)

        if name == "vendor_name" and len(self.vendors) > 0:
            match = self.vendors.find(value)
            if match:
                self.data.vendor_email = match.email
                logger.debug("Auto-filled e-mail for vendor %s", match.name)

        if hasattr(self.errors, name):
            setattr(self.errors, name, None)

    def update_fields(self, values: dict[str, Any]) -> None:
        """Apply several header edits in order."""
        for name, value in values.items():
            self.set_field(name, value)

    def regenerate_invoice_number(self) -> str:
        self.data.invoice_number = generate_invoice_number(self.config.invoice_prefix)
        return self.data.invoice_number

    def add_line_item(self, section: Section) -> LineItem:
        """Append an empty item (quantity 1, cost 0) to a section."""
        item = LineItem()
        self.data.items(section).append(item)
        return item

    def find_line_item(self, section: Section, item_id: str) -> LineItem | None:
        for item in self.data.items(section):
            if item.id == item_id:
                return item
        return None

    def remove_line_item(self, section: Section, item_id: str) -> bool:
        """Remove an item by id; returns False when nothing matched."""
        items = self.data.items(section)
        kept = [item for item in items if item.id != item_id]
        removed = len(kept) != len(items)
        items[:] = kept
        return removed

    def update_line_item(self, section: Section, item_id: str, name: str, value: Any) -> LineItem | None:
        """Edit one field of an item.

        Quantity and cost edits recompute the item total; description
        edits leave it untouched. Returns ``None`` for an unknown id.

        Raises:
            KeyError: If ``name`` is not an editable item field.
        """
        if name not in ITEM_FIELDS:
            raise KeyError(name)
        item = self.find_line_item(section, item_id)
        if item is None:
            return None

        if name == "description":
            item.description = str(value)
        else:
            setattr(item, name, _number(value))
            item.recalculate()
        return item

    @property
    def totals(self) -> Totals:
        return compute_totals(self.data)

    def apply_extraction(self, extracted: dict[str, Any]) -> None:
        """Merge OCR output into the draft.

        Extracted header values overwrite the current ones, except that an
        empty invoice number keeps the existing number. Deliveries are only
        replaced when at least one item was found; returns are reset.
        """
        for name in ("date", "vendor_name", "vendor_email"):
            if name in extracted:
                setattr(self.data, name, extracted[name])

        if extracted.get("invoice_number"):
            self.data.invoice_number = extracted["invoice_number"]

        deliveries = extracted.get("deliveries") or []
        if deliveries:
            self.data.deliveries = list(deliveries)
        if "returns" in extracted:
            self.data.returns = list(extracted["returns"])

        logger.info(
            "Applied extraction: %d delivery items, invoice %s",
            len(self.data.deliveries),
            self.data.invoice_number,
        )


def _number(value: Any) -> float:
    """Form inputs arrive as strings; non-numeric input counts as zero."""
    if isinstance(value, str):
        value = value.strip()
    return to_number(value)
