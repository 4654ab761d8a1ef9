"""Exception hierarchy for the SmartInvoice service.

Every error carries a message that is safe to show to the person filling
in the form; callers display it and let the user retry manually.

    SmartInvoiceError
    ├── VendorSyncError
    ├── ExtractionError
    ├── SignatureError
    ├── FormValidationError
    └── PDFGenerationError
"""


class SmartInvoiceError(Exception):
    """Base class for all user-facing service errors.

    Attributes:
        message: Human-readable error message.
        details: Optional extra context for logs and API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class VendorSyncError(SmartInvoiceError):
    """Raised when the vendor spreadsheet cannot be fetched or parsed."""


class ExtractionError(SmartInvoiceError):
    """Raised when the image-understanding call fails or returns nothing."""


class SignatureError(SmartInvoiceError):
    """Raised for unreadable signature payloads."""


class FormValidationError(SmartInvoiceError):
    """Raised when a submission fails validation.

    ``details`` maps field names to their error messages.
    """


class PDFGenerationError(SmartInvoiceError):
    """Raised when the invoice PDF cannot be rendered."""
