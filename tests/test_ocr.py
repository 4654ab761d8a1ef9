"""Tests for the Gemini invoice extractor."""

import base64
import json
import re
from unittest.mock import MagicMock, patch

import pytest

from smart_invoice.ocr.gemini_extractor import (
    EXTRACTION_PROMPT,
    USER_FAILURE_MESSAGE,
    InvoiceExtractor,
    map_response,
    strip_data_url,
)
from smart_invoice.utils.config import OCRConfig
from smart_invoice.utils.exceptions import ExtractionError

GEMINI_REPLY = {
    "invoiceNumber": "DN-5521",
    "date": "2024-01-15",
    "vendorName": "Acme Foods",
    "vendorEmail": "orders@acme.test",
    "deliveries": [
        {"quantity": 2, "description": "Rice 25kg", "cost": 30.5},
        {"quantity": "3", "description": "Tofu", "cost": "n/a"},
    ],
}


def _client_returning(text: str | None) -> MagicMock:
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=text)
    return client


class TestMapResponse:
    """Tests for mapping the model reply onto form fields."""

    def test_maps_fields(self) -> None:
        result = map_response(GEMINI_REPLY)
        assert result["invoice_number"] == "DN-5521"
        assert result["vendor_name"] == "Acme Foods"
        assert result["vendor_email"] == "orders@acme.test"
        assert result["returns"] == []

    def test_items_get_ids_and_totals(self) -> None:
        first, second = map_response(GEMINI_REPLY)["deliveries"]
        assert first.total == 61.0
        assert first.id != second.id
        assert second.quantity == 3
        assert second.cost == 0
        assert second.total == 0

    def test_missing_fields_default(self) -> None:
        result = map_response({})
        assert result["invoice_number"] == ""
        assert result["vendor_email"] == ""
        assert result["deliveries"] == []
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", result["date"])

    def test_strip_data_url(self) -> None:
        assert strip_data_url("data:image/jpeg;base64,QUJD") == "QUJD"
        assert strip_data_url("QUJD") == "QUJD"


class TestInvoiceExtractor:
    """Tests for the Gemini call wrapper."""

    def test_extract_success(self, sample_png: bytes) -> None:
        client = _client_returning(json.dumps(GEMINI_REPLY))
        extractor = InvoiceExtractor(OCRConfig(), client=client)

        result = extractor.extract(sample_png, "image/png")

        assert result["invoice_number"] == "DN-5521"
        assert len(result["deliveries"]) == 2
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["contents"][1] == EXTRACTION_PROMPT
        assert kwargs["config"].response_mime_type == "application/json"

    def test_extract_accepts_data_url(self, sample_png: bytes) -> None:
        client = _client_returning(json.dumps(GEMINI_REPLY))
        data_url = "data:image/png;base64," + base64.b64encode(sample_png).decode()
        result = InvoiceExtractor(client=client).extract(data_url)
        assert result["vendor_name"] == "Acme Foods"

    def test_invalid_base64(self) -> None:
        extractor = InvoiceExtractor(client=_client_returning("{}"))
        with pytest.raises(ExtractionError):
            extractor.extract("data:image/png;base64,@@not-base64@@")

    def test_empty_reply(self, sample_png: bytes) -> None:
        extractor = InvoiceExtractor(client=_client_returning(None))
        with pytest.raises(ExtractionError, match="No data returned from Gemini"):
            extractor.extract(sample_png)

    def test_malformed_json(self, sample_png: bytes) -> None:
        extractor = InvoiceExtractor(client=_client_returning("{not json"))
        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(sample_png)
        assert exc_info.value.message == USER_FAILURE_MESSAGE

    def test_non_object_json(self, sample_png: bytes) -> None:
        extractor = InvoiceExtractor(client=_client_returning("[1, 2]"))
        with pytest.raises(ExtractionError):
            extractor.extract(sample_png)

    def test_api_failure(self, sample_png: bytes) -> None:
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(ExtractionError) as exc_info:
            InvoiceExtractor(client=client).extract(sample_png)
        assert "quota exceeded" in exc_info.value.details["cause"]

    @patch("smart_invoice.ocr.gemini_extractor.get_api_key", return_value=None)
    def test_missing_api_key(self, _mock_key: MagicMock, sample_png: bytes) -> None:
        with pytest.raises(ExtractionError, match="API Key is missing"):
            InvoiceExtractor().extract(sample_png)

    @patch("smart_invoice.ocr.gemini_extractor.genai.Client")
    def test_client_built_lazily_with_key(self, mock_client_cls: MagicMock, sample_png: bytes) -> None:
        mock_client_cls.return_value = _client_returning(json.dumps(GEMINI_REPLY))
        extractor = InvoiceExtractor(api_key="test-key")
        mock_client_cls.assert_not_called()

        extractor.extract(sample_png)
        extractor.extract(sample_png)
        mock_client_cls.assert_called_once_with(api_key="test-key")
