"""SmartInvoice delivery-invoice entry service.

Captures vendor, line-item, and signature data for delivery invoices,
pre-fills forms from photographed documents via Gemini, syncs vendors
from a public Google Sheet, and exports formatted PDFs.
"""

__version__ = "1.0.0"
