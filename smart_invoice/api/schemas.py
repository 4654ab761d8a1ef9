"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, Field

from smart_invoice.invoice.form import Totals
from smart_invoice.invoice.models import InvoiceData, LineItem


class LineItemModel(BaseModel):
    """A delivery or return row."""

    id: str
    quantity: float
    description: str
    cost: float
    total: float

    @classmethod
    def from_item(cls, item: LineItem) -> "LineItemModel":
        return cls(
            id=item.id,
            quantity=item.quantity,
            description=item.description,
            cost=item.cost,
            total=item.total,
        )


class TotalsResponse(BaseModel):
    """Derived subtotals and net total."""

    delivery_total: float
    returns_total: float
    net_total: float

    @classmethod
    def from_totals(cls, totals: Totals) -> "TotalsResponse":
        return cls(
            delivery_total=totals.delivery_total,
            returns_total=totals.returns_total,
            net_total=totals.net_total,
        )


class InvoiceResponse(BaseModel):
    """Full state of one invoice draft."""

    id: str
    date: str
    invoice_number: str
    delivery_location: str
    vendor_name: str
    vendor_email: str
    vendor_signer_name: str
    receiver_signer_name: str
    deliveries: list[LineItemModel]
    returns: list[LineItemModel]
    totals: TotalsResponse
    errors: dict[str, str] = Field(default_factory=dict)
    signatures: dict[str, bool] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        draft_id: str,
        data: InvoiceData,
        totals: Totals,
        errors: dict[str, str],
        signatures: dict[str, bool],
    ) -> "InvoiceResponse":
        return cls(
            id=draft_id,
            date=data.date,
            invoice_number=data.invoice_number,
            delivery_location=data.delivery_location,
            vendor_name=data.vendor_name,
            vendor_email=data.vendor_email,
            vendor_signer_name=data.vendor_signer_name,
            receiver_signer_name=data.receiver_signer_name,
            deliveries=[LineItemModel.from_item(i) for i in data.deliveries],
            returns=[LineItemModel.from_item(i) for i in data.returns],
            totals=TotalsResponse.from_totals(totals),
            errors=errors,
            signatures=signatures,
        )


class InvoiceUpdate(BaseModel):
    """Header edits; omitted fields are left unchanged."""

    date: str | None = None
    invoice_number: str | None = None
    delivery_location: str | None = None
    vendor_name: str | None = None
    vendor_email: str | None = None
    vendor_signer_name: str | None = None
    receiver_signer_name: str | None = None


class LineItemUpdate(BaseModel):
    """Line-item edits; quantity and cost accept numbers or numeric text."""

    quantity: float | str | None = None
    cost: float | str | None = None
    description: str | None = None


class ValidationResponse(BaseModel):
    """Result of validating a draft."""

    valid: bool
    errors: dict[str, str]


class SignatureUpload(BaseModel):
    """A signature as raw stroke points or a ready PNG data URL."""

    strokes: list[list[tuple[float, float]]] | None = None
    data_url: str | None = None


class SignatureResponse(BaseModel):
    """Whether a party's signature is on file."""

    signer: str
    signed: bool


class VendorModel(BaseModel):
    """A vendor directory entry."""

    name: str
    email: str


class VendorSyncRequest(BaseModel):
    """Optional overrides of the configured sheet location."""

    sheet_id: str | None = None
    sheet_name: str | None = None
    name_column: str | None = None
    email_column: str | None = None


class VendorsResponse(BaseModel):
    """The loaded vendor directory."""

    count: int
    vendors: list[VendorModel]


class LocationsResponse(BaseModel):
    """Allowed delivery locations."""

    default: str
    locations: list[str]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    drafts: int
    vendors_loaded: int
    ocr_configured: bool
