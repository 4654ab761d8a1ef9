"""Invoice field extraction from photographs via Gemini.

The image is sent with a fixed JSON response schema; the reply is mapped
onto the form's field names, with fresh line-item ids and recomputed
totals. The contract of the remote model is treated as opaque: anything
that cannot be parsed is reported as a failed extraction.
"""

import base64
import binascii
import json
from datetime import datetime, timezone
from typing import Any

from google import genai
from google.genai import types

from smart_invoice.invoice.models import LineItem, to_number
from smart_invoice.utils.config import OCRConfig, get_api_key
from smart_invoice.utils.exceptions import ExtractionError
from smart_invoice.utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_INSTRUCTION = (
    "You are an expert OCR data extraction assistant specialized in invoices "
    "and delivery notes."
)
EXTRACTION_PROMPT = (
    "Extract the invoice details from this image. If specific fields like email "
    "are missing, leave them empty. Identify line items. Ensure costs are numeric."
)
USER_FAILURE_MESSAGE = "Failed to extract data. Please try again or fill manually."

INVOICE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "invoiceNumber": {
            "type": "STRING",
            "description": "The invoice or delivery note number",
        },
        "date": {
            "type": "STRING",
            "description": "The date of the invoice in YYYY-MM-DD format",
        },
        "vendorName": {
            "type": "STRING",
            "description": "The name of the vendor or supplier",
        },
        "vendorEmail": {
            "type": "STRING",
            "description": "Email address of the vendor if available",
        },
        "deliveries": {
            "type": "ARRAY",
            "description": "List of items being delivered or invoiced",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "quantity": {"type": "NUMBER"},
                    "description": {"type": "STRING"},
                    "cost": {"type": "NUMBER", "description": "Unit cost of the item"},
                },
                "required": ["quantity", "description", "cost"],
            },
        },
    },
    "required": ["invoiceNumber", "date", "vendorName", "deliveries"],
}


def strip_data_url(image: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix, leaving the base64 payload."""
    if image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


def map_response(raw: dict[str, Any]) -> dict[str, Any]:
    """Map the model's JSON onto form field names.

    Missing text fields become empty strings, a missing date becomes
    today, junk numbers become zero, and returns are always empty.
    """
    deliveries = [
        LineItem.from_dict(
            {
                "quantity": item.get("quantity"),
                "description": item.get("description") or "",
                "cost": item.get("cost"),
            }
        )
        for item in raw.get("deliveries") or []
        if isinstance(item, dict)
    ]
    return {
        "invoice_number": raw.get("invoiceNumber") or "",
        "date": raw.get("date") or datetime.now(timezone.utc).date().isoformat(),
        "vendor_name": raw.get("vendorName") or "",
        "vendor_email": raw.get("vendorEmail") or "",
        "deliveries": deliveries,
        "returns": [],
    }


class InvoiceExtractor:
    """Gemini-backed invoice extractor.

    Args:
        config: Model and upload settings.
        api_key: Explicit API key; defaults to the environment.
        client: Pre-built ``genai.Client`` (mainly for tests).
    """

    def __init__(
        self,
        config: OCRConfig | None = None,
        api_key: str | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self.config = config or OCRConfig()
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> genai.Client:
        """Lazily build the Gemini client on first use."""
        if self._client is None:
            api_key = self._api_key or get_api_key()
            if not api_key:
                raise ExtractionError("API Key is missing")
            self._client = genai.Client(api_key=api_key)
        return self._client

    def extract(self, image: bytes | str, mime_type: str | None = None) -> dict[str, Any]:
        """Extract invoice fields from an image.

        Args:
            image: Raw image bytes, a base64 string, or a data URL.
            mime_type: Image MIME type; defaults to the configured type.

        Returns:
            Partial invoice mapping ready for ``InvoiceForm.apply_extraction``.

        Raises:
            ExtractionError: On a missing key, API failure, or unusable reply.
        """
        image_bytes = self._to_bytes(image)
        client = self._get_client()

        try:
            response = client.models.generate_content(
                model=self.config.model_name,
                contents=[
                    types.Part.from_bytes(
                        data=image_bytes,
                        mime_type=mime_type or self.config.default_mime_type,
                    ),
                    EXTRACTION_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=INVOICE_SCHEMA,
                    system_instruction=SYSTEM_INSTRUCTION,
                ),
            )
        except Exception as exc:
            logger.error("OCR extraction error: %s", exc)
            raise ExtractionError(USER_FAILURE_MESSAGE, {"cause": str(exc)}) from exc

        text = response.text
        if not text:
            raise ExtractionError("No data returned from Gemini")

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("Gemini returned malformed JSON: %s", exc)
            raise ExtractionError(USER_FAILURE_MESSAGE, {"cause": str(exc)}) from exc
        if not isinstance(raw, dict):
            raise ExtractionError(USER_FAILURE_MESSAGE, {"cause": "reply is not an object"})

        result = map_response(raw)
        logger.info(
            "Extracted invoice %r from %s with %d items",
            result["invoice_number"],
            result["vendor_name"] or "unknown vendor",
            len(result["deliveries"]),
        )
        return result

    def _to_bytes(self, image: bytes | str) -> bytes:
        if isinstance(image, bytes):
            return image
        try:
            return base64.b64decode(strip_data_url(image), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ExtractionError("Image is not valid base64 data") from exc
