"""Delivery-invoice PDF export.

Lays the invoice out on A4 with explicit coordinates: header, vendor
block, deliveries and returns tables, a right-aligned summary, and the
two signature images. Positions are given in millimetres measured from
the top-left corner and converted to reportlab's bottom-left points.
"""

import io
from datetime import datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from smart_invoice.invoice.form import compute_totals
from smart_invoice.invoice.models import InvoiceData, LineItem
from smart_invoice.utils.exceptions import PDFGenerationError
from smart_invoice.utils.logger import get_logger

logger = get_logger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT = 14
RIGHT = 196
SUMMARY_X = 120
RECEIVER_SIG_X = 100
TOP_OF_NEW_PAGE = 20
BOTTOM_MARGIN = 15
SUMMARY_BREAK_Y = 240
SIGNATURE_BREAK_Y = 250
SIG_WIDTH = 60
SIG_HEIGHT = 30

TABLE_HEADERS = ["Qty", "Description", "Unit Cost", "Total"]
COLUMN_WIDTHS_MM = (20, 102, 30, 30)
DELIVERY_HEADER_COLOR = colors.Color(59 / 255, 130 / 255, 246 / 255)
RETURNS_HEADER_COLOR = colors.Color(239 / 255, 68 / 255, 68 / 255)
STRIPE_COLOR = colors.Color(245 / 255, 245 / 255, 245 / 255)
RETURNS_TEXT_COLOR = colors.Color(220 / 255, 50 / 255, 50 / 255)

_CELL_STYLE = ParagraphStyle("cell", fontName="Helvetica", fontSize=9, leading=11)


def format_currency(amount: float) -> str:
    return f"${amount:.2f}"


def format_quantity(quantity: float) -> str:
    if isinstance(quantity, float) and quantity.is_integer():
        return str(int(quantity))
    return str(quantity)


def pdf_filename(invoice: InvoiceData) -> str:
    """File name offered for download, ``invoice_<number>.pdf``."""
    return f"invoice_{invoice.invoice_number or 'draft'}.pdf"


def _grey(level: int) -> colors.Color:
    return colors.Color(level / 255, level / 255, level / 255)


class InvoicePDFRenderer:
    """Renders one invoice onto a reportlab canvas.

    Args:
        title: Heading printed at the top of the first page.
    """

    def __init__(self, title: str = "DELIVERY INVOICE") -> None:
        self.title = title
        self._canvas: canvas.Canvas | None = None
        self.y = 0.0

    @property
    def c(self) -> canvas.Canvas:
        if self._canvas is None:
            raise RuntimeError("render() has not started a document")
        return self._canvas

    def _pt(self, y_mm: float) -> float:
        """Top-left millimetres to bottom-left points."""
        return PAGE_HEIGHT - y_mm * mm

    def _text(self, text: str, x: float, y: float, size: float = 10, color: colors.Color = colors.black,
              bold: bool = False, align: str = "left") -> None:
        self.c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        self.c.setFillColor(color)
        if align == "right":
            self.c.drawRightString(x * mm, self._pt(y), text)
        else:
            self.c.drawString(x * mm, self._pt(y), text)

    def _line(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.c.setStrokeColor(_grey(200))
        self.c.line(x0 * mm, self._pt(y0), x1 * mm, self._pt(y1))

    def _new_page(self) -> None:
        self.c.showPage()
        self.y = TOP_OF_NEW_PAGE

    def render(
        self,
        invoice: InvoiceData,
        vendor_signature: bytes | None = None,
        receiver_signature: bytes | None = None,
        generated_at: datetime | None = None,
    ) -> bytes:
        """Render the invoice and return the PDF bytes.

        Args:
            invoice: Invoice to print.
            vendor_signature: PNG bytes of the vendor signature, if any.
            receiver_signature: PNG bytes of the receiver signature, if any.
            generated_at: Timestamp printed under the title (defaults to now).

        Raises:
            PDFGenerationError: If reportlab cannot build the document.
        """
        buf = io.BytesIO()
        try:
            self._canvas = canvas.Canvas(buf, pagesize=A4)
            self._canvas.setTitle(f"Invoice {invoice.invoice_number}")
            self._header(invoice, generated_at or datetime.now())
            self._sections(invoice)
            self._summary(invoice)
            self._signatures(invoice, vendor_signature, receiver_signature)
            self._canvas.save()
        except PDFGenerationError:
            raise
        except Exception as exc:
            logger.error("PDF generation failed: %s", exc)
            raise PDFGenerationError("Error generating PDF. Please try again.") from exc
        finally:
            self._canvas = None

        data = buf.getvalue()
        logger.info("Rendered %s (%d bytes)", pdf_filename(invoice), len(data))
        return data

    def _header(self, invoice: InvoiceData, generated_at: datetime) -> None:
        self._text(self.title, LEFT, 20, size=22, color=_grey(40))
        stamp = generated_at.strftime("%m/%d/%Y, %I:%M:%S %p")
        self._text(f"Generated: {stamp}", LEFT, 30, color=_grey(100))
        self._line(LEFT, 35, RIGHT, 35)

        self.y = 45
        self._text("Vendor", LEFT, self.y, size=12)
        self._text(f"Vendor: {invoice.vendor_name}", LEFT, self.y + 7, color=_grey(60))
        self._text(f"Email: {invoice.vendor_email}", LEFT, self.y + 13, color=_grey(60))
        self._text(f"Delivery Location: {invoice.delivery_location}", LEFT, self.y + 19, color=_grey(60))
        self._text(f"Invoice #: {invoice.invoice_number}", SUMMARY_X, self.y + 7, color=_grey(60))
        self._text(f"Date: {invoice.date}", SUMMARY_X, self.y + 13, color=_grey(60))
        self.y += 30

    def _sections(self, invoice: InvoiceData) -> None:
        self._text("Delivery", LEFT, self.y, size=14)
        self.y += 6
        self._table(invoice.deliveries, DELIVERY_HEADER_COLOR)
        self.y += 15

        self._text("Returns", LEFT, self.y, size=14)
        self.y += 6
        if invoice.returns:
            self._table(invoice.returns, RETURNS_HEADER_COLOR)
            self.y += 10
        else:
            self._text("No returns recorded for this invoice.", LEFT, self.y, color=_grey(100))
            self.y += 10

    def _table(self, items: list[LineItem], header_color: colors.Color) -> None:
        """Draw a striped item table, continuing on new pages as needed."""
        rows = [TABLE_HEADERS] + [
            [
                format_quantity(item.quantity),
                Paragraph(escape(item.description), _CELL_STYLE),
                format_currency(item.cost),
                format_currency(item.total),
            ]
            for item in items
        ]
        table = Table(rows, colWidths=[w * mm for w in COLUMN_WIDTHS_MM], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), header_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, STRIPE_COLOR]),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ]
            )
        )

        width = (RIGHT - LEFT) * mm
        fresh_page = False
        while True:
            available = (PAGE_HEIGHT / mm - BOTTOM_MARGIN - self.y) * mm
            _, height = table.wrapOn(self.c, width, available)
            if height <= available or fresh_page and len(table.split(width, available)) < 2:
                table.drawOn(self.c, LEFT * mm, self._pt(self.y) - height)
                self.y += height / mm
                return

            parts = table.split(width, available)
            if len(parts) < 2:
                self._new_page()
                fresh_page = True
                continue

            head, table = parts[0], parts[1]
            _, head_height = head.wrapOn(self.c, width, available)
            head.drawOn(self.c, LEFT * mm, self._pt(self.y) - head_height)
            self._new_page()
            fresh_page = True

    def _summary(self, invoice: InvoiceData) -> None:
        totals = compute_totals(invoice)
        if self.y > SUMMARY_BREAK_Y:
            self._new_page()

        self._line(SUMMARY_X, self.y, RIGHT, self.y)
        self.y += 8

        self._text("Delivery Subtotal:", SUMMARY_X, self.y)
        self._text(format_currency(totals.delivery_total), RIGHT, self.y, align="right")
        self.y += 6

        self._text("Returns Subtotal:", SUMMARY_X, self.y)
        self._text(f"-{format_currency(totals.returns_total)}", RIGHT, self.y,
                   color=RETURNS_TEXT_COLOR, align="right")
        self.y += 2

        self._line(SUMMARY_X, self.y + 2, RIGHT, self.y + 2)
        self.y += 8

        self._text("Net Total:", SUMMARY_X, self.y, size=12, bold=True)
        self._text(format_currency(totals.net_total), RIGHT, self.y, size=12, bold=True, align="right")
        self.y += 15

    def _signatures(self, invoice: InvoiceData, vendor_sig: bytes | None, receiver_sig: bytes | None) -> None:
        if self.y > SIGNATURE_BREAK_Y:
            self._new_page()

        self._text("Signatures", LEFT, self.y, size=12)
        self.y += 10

        self._signature(vendor_sig, LEFT, "Vendor Signature", invoice.vendor_signer_name)
        self._signature(receiver_sig, RECEIVER_SIG_X, "Receiver Signature", invoice.receiver_signer_name)

    def _signature(self, image: bytes | None, x: float, caption: str, signer: str) -> None:
        if not image:
            return
        self.c.drawImage(
            ImageReader(io.BytesIO(image)),
            x * mm,
            self._pt(self.y + SIG_HEIGHT),
            width=SIG_WIDTH * mm,
            height=SIG_HEIGHT * mm,
            mask="auto",
        )
        self._text(caption, x, self.y + SIG_HEIGHT + 5, size=8)
        if signer:
            self._text(f"Signed by: {signer}", x, self.y + SIG_HEIGHT + 10, size=8)


def generate_invoice_pdf(
    invoice: InvoiceData,
    vendor_signature: bytes | None = None,
    receiver_signature: bytes | None = None,
    title: str = "DELIVERY INVOICE",
    generated_at: datetime | None = None,
) -> bytes:
    """Render an invoice to PDF bytes with the default layout."""
    return InvoicePDFRenderer(title).render(invoice, vendor_signature, receiver_signature, generated_at)
