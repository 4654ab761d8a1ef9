"""Command-line interface for the SmartInvoice service.

Subcommands run the API server, sync the vendor sheet, scan an invoice
photo, and render a saved invoice (JSON) to PDF.
"""

import argparse
import json
import mimetypes
import sys
from dataclasses import asdict
from pathlib import Path

from smart_invoice.invoice.models import InvoiceData
from smart_invoice.main import main as serve_api
from smart_invoice.ocr.gemini_extractor import InvoiceExtractor
from smart_invoice.pdf.invoice_pdf import generate_invoice_pdf, pdf_filename
from smart_invoice.utils.config import load_config
from smart_invoice.utils.exceptions import SmartInvoiceError
from smart_invoice.utils.logger import get_logger, setup_logging
from smart_invoice.vendors.sheets import fetch_vendors

logger = get_logger(__name__)


def sync_vendors(
    config_path: Path | None = None,
    sheet_id: str | None = None,
    sheet_name: str | None = None,
    name_column: str | None = None,
    email_column: str | None = None,
) -> list[dict[str, str]]:
    """Fetch the vendor sheet and return name/email records.

    Args:
        config_path: Optional configuration file.
        sheet_id: Spreadsheet ID overriding the configured one.
        sheet_name: Tab name overriding the configured one.
        name_column: Column letter holding vendor names.
        email_column: Column letter holding vendor e-mails.
    """
    config = load_config(config_path)
    overrides = {
        "sheet_id": sheet_id,
        "sheet_name": sheet_name,
        "name_column": name_column,
        "email_column": email_column,
    }
    sheet = config.sheets.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    return [asdict(v) for v in fetch_vendors(sheet)]


def scan_image(file_path: Path, config_path: Path | None = None) -> dict[str, object]:
    """Extract invoice fields from an image file.

    Returns:
        JSON-ready mapping of the extracted fields.
    """
    config = load_config(config_path)
    mime_type, _ = mimetypes.guess_type(file_path.name)
    extracted = InvoiceExtractor(config.ocr).extract(file_path.read_bytes(), mime_type)
    extracted["deliveries"] = [asdict(item) for item in extracted["deliveries"]]
    extracted["returns"] = [asdict(item) for item in extracted["returns"]]
    return extracted


def render_invoice(
    invoice_path: Path,
    output: Path | None = None,
    vendor_signature: Path | None = None,
    receiver_signature: Path | None = None,
    config_path: Path | None = None,
) -> Path:
    """Render an invoice JSON file to PDF.

    Args:
        invoice_path: JSON file with invoice fields and line items.
        output: Target PDF path; defaults to ``invoice_<number>.pdf`` in
            the configured output directory.
        vendor_signature: Optional PNG of the vendor signature.
        receiver_signature: Optional PNG of the receiver signature.
        config_path: Optional configuration file.

    Returns:
        Path of the written PDF.
    """
    config = load_config(config_path)
    with open(invoice_path) as f:
        invoice = InvoiceData.from_dict(json.load(f))

    pdf = generate_invoice_pdf(
        invoice,
        vendor_signature.read_bytes() if vendor_signature else None,
        receiver_signature.read_bytes() if receiver_signature else None,
        title=config.pdf.title,
    )

    target = output or Path(config.pdf.output_dir) / pdf_filename(invoice)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(pdf)
    logger.info("Wrote %s", target)
    return target


def _emit(payload: object, output: Path | None) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        print(f"Output written to {output}")
    else:
        print(text)


def _require_file(path: Path | None) -> None:
    if path is not None and not path.exists():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="SmartInvoice delivery-invoice tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="Configuration YAML file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    vendors_parser = subparsers.add_parser("vendors", help="Sync vendors from Google Sheets")
    vendors_parser.add_argument("--sheet-id", help="Spreadsheet ID")
    vendors_parser.add_argument("--sheet-name", help="Sheet (tab) name")
    vendors_parser.add_argument("--name-col", help="Column letter of vendor names")
    vendors_parser.add_argument("--email-col", help="Column letter of vendor e-mails")
    vendors_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    scan_parser = subparsers.add_parser("scan", help="Extract fields from an invoice photo")
    scan_parser.add_argument("file", type=Path, help="Image file to scan")
    scan_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    render_parser = subparsers.add_parser("render", help="Render an invoice JSON file to PDF")
    render_parser.add_argument("invoice", type=Path, help="Invoice JSON file")
    render_parser.add_argument("-o", "--output", type=Path, help="Output PDF file")
    render_parser.add_argument("--vendor-signature", type=Path, help="Vendor signature PNG")
    render_parser.add_argument("--receiver-signature", type=Path, help="Receiver signature PNG")

    args = parser.parse_args(argv)

    setup_logging(load_config(args.config).log_level)

    try:
        if args.command == "serve":
            serve_api(args.host, args.port, args.config)
        elif args.command == "vendors":
            vendors = sync_vendors(
                args.config, args.sheet_id, args.sheet_name, args.name_col, args.email_col
            )
            _emit(vendors, args.output)
        elif args.command == "scan":
            _require_file(args.file)
            _emit(scan_image(args.file, args.config), args.output)
        elif args.command == "render":
            for path in (args.invoice, args.vendor_signature, args.receiver_signature):
                _require_file(path)
            target = render_invoice(
                args.invoice,
                args.output,
                args.vendor_signature,
                args.receiver_signature,
                args.config,
            )
            print(f"Invoice written to {target}")
        else:
            parser.print_help()
            sys.exit(0)
    except SmartInvoiceError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)
    except json.JSONDecodeError as exc:
        print(f"Error: invalid invoice JSON: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
