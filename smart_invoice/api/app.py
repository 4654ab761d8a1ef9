"""FastAPI application for the SmartInvoice entry service.

Invoice drafts live in memory for the lifetime of the process. Errors
from external services (Gemini, Google Sheets) are shown to the user as
a single message; there is no automatic retry.
"""

import uuid
from pathlib import Path
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from smart_invoice import __version__
from smart_invoice.invoice.form import InvoiceForm
from smart_invoice.invoice.models import Section, SignatureType
from smart_invoice.invoice.submission import submit_invoice
from smart_invoice.ocr.gemini_extractor import USER_FAILURE_MESSAGE, InvoiceExtractor
from smart_invoice.signature.pad import decode_data_url, render_strokes
from smart_invoice.utils.config import AppConfig, get_api_key, load_config
from smart_invoice.utils.exceptions import (
    ExtractionError,
    FormValidationError,
    PDFGenerationError,
    SignatureError,
    VendorSyncError,
)
from smart_invoice.utils.logger import get_logger
from smart_invoice.validation.form_validator import FormValidator
from smart_invoice.vendors.sheets import VendorDirectory

from .schemas import (
    HealthResponse,
    InvoiceResponse,
    InvoiceUpdate,
    LineItemModel,
    LineItemUpdate,
    LocationsResponse,
    SignatureResponse,
    SignatureUpload,
    TotalsResponse,
    ValidationResponse,
    VendorModel,
    VendorSyncRequest,
    VendorsResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="SmartInvoice API",
    description="Fill, scan, sign, and export delivery invoices",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/heic",
    "image/heif",
    "application/octet-stream",
}


@dataclass
class Draft:
    """One invoice being filled in, with its captured signatures."""

    form: InvoiceForm
    signatures: dict[SignatureType, bytes] = field(default_factory=dict)


@dataclass
class ServiceState:
    """Process-wide in-memory state."""

    config: AppConfig
    vendors: VendorDirectory = field(default_factory=VendorDirectory)
    drafts: dict[str, Draft] = field(default_factory=dict)
    extractor: InvoiceExtractor | None = None
    validator: FormValidator | None = None

    def get_extractor(self) -> InvoiceExtractor:
        if self.extractor is None:
            self.extractor = InvoiceExtractor(self.config.ocr)
        return self.extractor

    def get_validator(self) -> FormValidator:
        """Rule table from ``validation.rules_path``, loaded once."""
        if self.validator is None:
            self.validator = FormValidator(Path(self.config.validation.rules_path))
        return self.validator


_state: ServiceState | None = None


def get_state() -> ServiceState:
    """Return the shared state, loading configuration on first use."""
    global _state
    if _state is None:
        _state = ServiceState(config=load_config())
    return _state


def reset_state(state: ServiceState | None = None) -> None:
    """Replace the shared state (``None`` reloads on next access)."""
    global _state
    _state = state


def _get_draft(draft_id: str) -> Draft:
    draft = get_state().drafts.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail=f"Invoice draft not found: {draft_id}")
    return draft


def _respond(draft_id: str, draft: Draft) -> InvoiceResponse:
    form = draft.form
    return InvoiceResponse.build(
        draft_id,
        form.data,
        form.totals,
        form.errors.as_dict(),
        {s.value: s in draft.signatures for s in SignatureType},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return service health status."""
    state = get_state()
    return HealthResponse(
        status="healthy",
        version=__version__,
        drafts=len(state.drafts),
        vendors_loaded=len(state.vendors),
        ocr_configured=get_api_key() is not None,
    )


@app.get("/locations", response_model=LocationsResponse)
async def list_locations() -> LocationsResponse:
    form_config = get_state().config.form
    return LocationsResponse(default=form_config.default_location, locations=form_config.locations)


@app.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def create_invoice() -> InvoiceResponse:
    """Start a blank draft dated today with a generated invoice number."""
    state = get_state()
    draft_id = str(uuid.uuid4())
    draft = Draft(form=InvoiceForm.blank(state.vendors, state.config.form))
    state.drafts[draft_id] = draft
    logger.info("Created draft %s (%s)", draft_id, draft.form.data.invoice_number)
    return _respond(draft_id, draft)


@app.get("/invoices/{draft_id}", response_model=InvoiceResponse)
async def get_invoice(draft_id: str) -> InvoiceResponse:
    return _respond(draft_id, _get_draft(draft_id))


@app.patch("/invoices/{draft_id}", response_model=InvoiceResponse)
async def update_invoice(draft_id: str, update: InvoiceUpdate) -> InvoiceResponse:
    """Edit header fields; a known vendor name auto-fills the e-mail."""
    draft = _get_draft(draft_id)
    values = update.model_dump(exclude_none=True)

    location = values.get("delivery_location")
    locations = get_state().config.form.locations
    if location is not None and location not in locations:
        raise HTTPException(status_code=400, detail=f"Unknown delivery location: {location}")

    draft.form.update_fields(values)
    return _respond(draft_id, draft)


@app.post("/invoices/{draft_id}/invoice-number", response_model=InvoiceResponse)
async def regenerate_invoice_number(draft_id: str) -> InvoiceResponse:
    draft = _get_draft(draft_id)
    draft.form.regenerate_invoice_number()
    return _respond(draft_id, draft)


@app.post("/invoices/{draft_id}/{section}/items", response_model=LineItemModel, status_code=201)
async def add_line_item(draft_id: str, section: Section) -> LineItemModel:
    item = _get_draft(draft_id).form.add_line_item(section)
    return LineItemModel.from_item(item)


@app.patch("/invoices/{draft_id}/{section}/items/{item_id}", response_model=LineItemModel)
async def update_line_item(
    draft_id: str, section: Section, item_id: str, update: LineItemUpdate
) -> LineItemModel:
    """Edit an item; quantity or cost changes recompute its total."""
    form = _get_draft(draft_id).form
    if form.find_line_item(section, item_id) is None:
        raise HTTPException(status_code=404, detail=f"Line item not found: {item_id}")

    item = None
    for name, value in update.model_dump(exclude_none=True).items():
        item = form.update_line_item(section, item_id, name, value)
    return LineItemModel.from_item(item or form.find_line_item(section, item_id))


@app.delete("/invoices/{draft_id}/{section}/items/{item_id}", status_code=204)
async def remove_line_item(draft_id: str, section: Section, item_id: str) -> Response:
    if not _get_draft(draft_id).form.remove_line_item(section, item_id):
        raise HTTPException(status_code=404, detail=f"Line item not found: {item_id}")
    return Response(status_code=204)


@app.get("/invoices/{draft_id}/totals", response_model=TotalsResponse)
async def get_totals(draft_id: str) -> TotalsResponse:
    return TotalsResponse.from_totals(_get_draft(draft_id).form.totals)


@app.post("/invoices/{draft_id}/validate", response_model=ValidationResponse)
async def validate_invoice(draft_id: str) -> ValidationResponse:
    """Run field validation and remember the errors on the draft."""
    form = _get_draft(draft_id).form
    report = get_state().get_validator().validate(form.data)
    form.errors = report.errors
    return ValidationResponse(valid=report.all_valid, errors=report.errors.as_dict())


@app.post("/invoices/{draft_id}/scan", response_model=InvoiceResponse)
def scan_invoice(
    draft_id: str, file: Annotated[UploadFile, File(...)]
) -> InvoiceResponse:
    """Pre-fill a draft from a photographed invoice (runs in the threadpool)."""
    draft = _get_draft(draft_id)
    state = get_state()

    if file.content_type and file.content_type not in _ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {file.content_type}")

    content = file.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > state.config.ocr.max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail="Uploaded file is too large")

    mime_type = file.content_type if file.content_type != "application/octet-stream" else None
    try:
        extracted = state.get_extractor().extract(content, mime_type)
    except ExtractionError as exc:
        logger.error("Scan failed for draft %s: %s", draft_id, exc.message)
        raise HTTPException(status_code=502, detail=USER_FAILURE_MESSAGE) from exc

    draft.form.apply_extraction(extracted)
    return _respond(draft_id, draft)


@app.put("/invoices/{draft_id}/signatures/{signer}", response_model=SignatureResponse)
async def put_signature(draft_id: str, signer: SignatureType, upload: SignatureUpload) -> SignatureResponse:
    """Store a signature from stroke points or a PNG data URL."""
    draft = _get_draft(draft_id)

    if upload.strokes:
        data_url = render_strokes(upload.strokes, get_state().config.signature)
    else:
        data_url = upload.data_url
    if not data_url:
        raise HTTPException(status_code=400, detail="Signature is empty")

    try:
        draft.signatures[signer] = decode_data_url(data_url)
    except SignatureError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    return SignatureResponse(signer=signer.value, signed=True)


@app.delete("/invoices/{draft_id}/signatures/{signer}", response_model=SignatureResponse)
async def clear_signature(draft_id: str, signer: SignatureType) -> SignatureResponse:
    _get_draft(draft_id).signatures.pop(signer, None)
    return SignatureResponse(signer=signer.value, signed=False)


@app.post("/invoices/{draft_id}/submit")
async def submit(draft_id: str) -> Response:
    """Validate, require both signatures, and return the invoice PDF."""
    draft = _get_draft(draft_id)
    state = get_state()
    try:
        result = submit_invoice(
            draft.form,
            draft.signatures.get(SignatureType.VENDOR),
            draft.signatures.get(SignatureType.RECEIVER),
            validator=state.get_validator(),
            title=state.config.pdf.title,
        )
    except FormValidationError as exc:
        raise HTTPException(
            status_code=422, detail={"message": exc.message, "errors": exc.details}
        ) from exc
    except PDFGenerationError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc

    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Submission-Message": result.message,
        },
    )


def _vendors_response(directory: VendorDirectory) -> VendorsResponse:
    return VendorsResponse(
        count=len(directory),
        vendors=[VendorModel(name=v.name, email=v.email) for v in directory.vendors],
    )


@app.get("/vendors", response_model=VendorsResponse)
async def list_vendors() -> VendorsResponse:
    return _vendors_response(get_state().vendors)


@app.post("/vendors/sync", response_model=VendorsResponse)
def sync_vendors(request: VendorSyncRequest | None = None) -> VendorsResponse:
    """Reload the vendor directory from the Google Sheet (runs in the threadpool)."""
    state = get_state()
    overrides = request.model_dump(exclude_none=True) if request else {}
    sheet_config = state.config.sheets.model_copy(update=overrides)

    try:
        state.vendors.sync(sheet_config)
    except VendorSyncError as exc:
        missing = not sheet_config.sheet_id.strip() or not sheet_config.sheet_name.strip()
        status = 400 if missing else 502
        raise HTTPException(status_code=status, detail=exc.message) from exc
    return _vendors_response(state.vendors)
