"""Invoice submission: validate, check signatures, export the PDF.

E-mail delivery to the vendor is simulated; the intended send is logged.
"""

from dataclasses import dataclass

from smart_invoice.pdf.invoice_pdf import generate_invoice_pdf, pdf_filename
from smart_invoice.utils.exceptions import FormValidationError
from smart_invoice.utils.logger import get_logger
from smart_invoice.validation.form_validator import (
    FIX_ERRORS_MESSAGE,
    SIGNATURES_REQUIRED_MESSAGE,
    FormValidator,
)

from .form import InvoiceForm

logger = get_logger(__name__)


@dataclass
class SubmissionResult:
    """The exported PDF and the simulated delivery notice."""

    filename: str
    pdf: bytes
    message: str


def submit_invoice(
    form: InvoiceForm,
    vendor_signature: bytes | None,
    receiver_signature: bytes | None,
    validator: FormValidator | None = None,
    title: str = "DELIVERY INVOICE",
) -> SubmissionResult:
    """Submit a completed draft.

    Field errors are stored on ``form.errors`` so the caller can show them
    inline next to the inputs.

    Raises:
        FormValidationError: On field errors (``details`` holds the error
            map) or when either signature is missing.
        PDFGenerationError: If rendering fails.
    """
    report = (validator or FormValidator()).validate(form.data)
    form.errors = report.errors
    if not report.all_valid:
        logger.info("Submission rejected: %s", report.errors.as_dict())
        raise FormValidationError(FIX_ERRORS_MESSAGE, report.errors.as_dict())

    if not vendor_signature or not receiver_signature:
        raise FormValidationError(SIGNATURES_REQUIRED_MESSAGE, {"section": "signatures"})

    pdf = generate_invoice_pdf(form.data, vendor_signature, receiver_signature, title=title)
    message = f"Form submitted! Sending email to {form.data.vendor_email}... (Simulated)"
    logger.info("Sending email to %s... (Simulated)", form.data.vendor_email)
    return SubmissionResult(filename=pdf_filename(form.data), pdf=pdf, message=message)
