"""Vendor directory backed by a public Google Sheet.

The sheet is read through its CSV export endpoint, so it must be shared
as "Anyone with the link". Columns are addressed by spreadsheet letters.
"""

import re
from dataclasses import dataclass, field
from urllib.parse import quote

import requests

from smart_invoice.invoice.models import Vendor
from smart_invoice.utils.config import SheetConfig
from smart_invoice.utils.exceptions import VendorSyncError
from smart_invoice.utils.logger import get_logger

logger = get_logger(__name__)

CSV_EXPORT_URL = (
    "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"
    "?tqx=out:csv&sheet={sheet_name}"
)
HEADER_NAME = "vendor name"

MISSING_SHEET_MESSAGE = "Please enter Spreadsheet ID and Sheet Name"
CONNECT_FAILED_MESSAGE = (
    "Failed to connect. Ensure the Google Sheet is 'Public' "
    "(Anyone with the link) and the Sheet Name is correct."
)
NO_VENDORS_MESSAGE = "No valid vendors found. Check column letters."


def column_index(column: str) -> int:
    """Convert a spreadsheet column letter to a zero-based index.

    ``A`` is 0, ``Z`` is 25 and ``AA`` is 26. Non-letters are ignored and
    case does not matter; an empty column gives -1.
    """
    letters = re.sub(r"[^A-Za-z]", "", column).upper()
    index = 0
    for letter in letters:
        index = index * 26 + (ord(letter) - ord("A") + 1)
    return index - 1


def build_csv_url(sheet_id: str, sheet_name: str) -> str:
    """Return the CSV export URL for one tab of a public sheet."""
    return CSV_EXPORT_URL.format(
        sheet_id=quote(sheet_id, safe=""), sheet_name=quote(sheet_name, safe="")
    )


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line, keeping commas inside double quotes.

    Every double quote toggles quoted mode wherever it appears, so a
    quote opening mid-field still protects the commas after it. Quote
    characters are dropped and fields are trimmed.
    """
    row: list[str] = []
    current: list[str] = []
    in_quote = False
    for char in line:
        if char == '"':
            in_quote = not in_quote
        elif char == "," and not in_quote:
            row.append("".join(current))
            current = []
        else:
            current.append(char)
    row.append("".join(current))
    return [_strip_quotes(value) for value in row]


def _strip_quotes(value: str) -> str:
    return re.sub(r'^"|"$', "", value.strip()).strip()


def parse_vendors(csv_text: str, name_column: str = "A", email_column: str = "B") -> list[Vendor]:
    """Parse the sheet's CSV export into vendors.

    The first row is treated as the header and skipped, as are rows
    without a name and repeated header rows.

    Raises:
        VendorSyncError: If no vendor survives the filtering.
    """
    name_idx = column_index(name_column)
    email_idx = column_index(email_column)

    vendors: list[Vendor] = []
    for row_number, line in enumerate(csv_text.split("\n")):
        if row_number == 0:
            continue
        cols = split_csv_line(line)
        name = _cell(cols, name_idx)
        if not name or name.lower() == HEADER_NAME:
            continue
        vendors.append(Vendor(name=name, email=_cell(cols, email_idx)))

    if not vendors:
        raise VendorSyncError(NO_VENDORS_MESSAGE)
    return vendors


def _cell(cols: list[str], index: int) -> str:
    if 0 <= index < len(cols):
        return cols[index]
    return ""


def fetch_vendors(config: SheetConfig, session: requests.Session | None = None) -> list[Vendor]:
    """Download and parse the vendor sheet.

    Args:
        config: Sheet location and column letters.
        session: Optional requests session (for connection reuse).

    Returns:
        Vendors in sheet order.

    Raises:
        VendorSyncError: On missing settings, network failures, non-2xx
            responses, or a sheet without usable rows.
    """
    if not config.sheet_id.strip() or not config.sheet_name.strip():
        raise VendorSyncError(MISSING_SHEET_MESSAGE)

    url = build_csv_url(config.sheet_id.strip(), config.sheet_name.strip())
    http = session or requests
    try:
        response = http.get(url, timeout=config.timeout_s)
    except requests.RequestException as exc:
        logger.error("Vendor sheet request failed: %s", exc)
        raise VendorSyncError(CONNECT_FAILED_MESSAGE, {"url": url}) from exc

    if not response.ok:
        logger.error("Vendor sheet returned HTTP %d", response.status_code)
        raise VendorSyncError(
            CONNECT_FAILED_MESSAGE, {"url": url, "status": response.status_code}
        )

    vendors = parse_vendors(response.text, config.name_column, config.email_column)
    logger.info("Synced %d vendors from sheet %s", len(vendors), config.sheet_name)
    return vendors


@dataclass
class VendorDirectory:
    """Vendors loaded from the sheet, used for autocomplete and auto-fill."""

    vendors: list[Vendor] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.vendors)

    def replace(self, vendors: list[Vendor]) -> None:
        self.vendors = list(vendors)

    def names(self) -> list[str]:
        return [v.name for v in self.vendors]

    def find(self, name: str) -> Vendor | None:
        """Return the vendor whose name matches exactly, ignoring case."""
        wanted = name.lower()
        for vendor in self.vendors:
            if vendor.name.lower() == wanted:
                return vendor
        return None

    def sync(self, config: SheetConfig, session: requests.Session | None = None) -> int:
        """Reload from the sheet; the current list survives a failed sync."""
        self.replace(fetch_vendors(config, session))
        return len(self.vendors)
