"""Tests for invoice form state, line items, and totals."""

import re
from datetime import date, datetime, timezone

import pytest

from smart_invoice.invoice.form import (
    InvoiceForm,
    compute_totals,
    generate_invoice_number,
    new_invoice,
    section_total,
)
from smart_invoice.invoice.models import (
    FormErrors,
    InvoiceData,
    LineItem,
    Section,
    to_number,
)
from smart_invoice.utils.config import FormConfig


class TestInvoiceNumber:
    """Tests for generated invoice numbers."""

    def test_format(self) -> None:
        number = generate_invoice_number()
        assert re.fullmatch(r"INV-\d{6}-\d{4}", number)

    def test_uses_given_date(self) -> None:
        now = datetime(2024, 3, 7, tzinfo=timezone.utc)
        assert generate_invoice_number(now=now).startswith("INV-240307-")

    def test_custom_prefix(self) -> None:
        assert generate_invoice_number("DLV").startswith("DLV-")


class TestNewInvoice:
    """Tests for blank drafts."""

    def test_defaults(self) -> None:
        data = new_invoice(today=date(2024, 1, 15))
        assert data.date == "2024-01-15"
        assert data.delivery_location == "Viendong"
        assert data.vendor_name == ""
        assert data.vendor_email == ""
        assert data.deliveries == []
        assert data.returns == []
        assert data.invoice_number.startswith("INV-")

    def test_configured_location(self) -> None:
        data = new_invoice(FormConfig(default_location="Worldfoods"))
        assert data.delivery_location == "Worldfoods"


class TestLineItems:
    """Tests for adding, editing, and removing line items."""

    def test_add_item_defaults(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        assert item.quantity == 1
        assert item.cost == 0
        assert item.total == 0
        assert item.description == ""
        assert form.data.deliveries == [item]

    def test_items_keep_order(self, form: InvoiceForm) -> None:
        first = form.add_line_item(Section.RETURNS)
        second = form.add_line_item(Section.RETURNS)
        assert [i.id for i in form.data.returns] == [first.id, second.id]
        assert first.id != second.id

    def test_quantity_edit_recomputes_total(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        form.update_line_item(Section.DELIVERIES, item.id, "cost", 2.5)
        form.update_line_item(Section.DELIVERIES, item.id, "quantity", 4)
        assert item.total == 10.0

    def test_string_inputs_are_numbers(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        form.update_line_item(Section.DELIVERIES, item.id, "quantity", "3")
        form.update_line_item(Section.DELIVERIES, item.id, "cost", " 1.5 ")
        assert item.quantity == 3
        assert item.total == 4.5

    def test_non_numeric_input_counts_as_zero(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        form.update_line_item(Section.DELIVERIES, item.id, "cost", 5)
        form.update_line_item(Section.DELIVERIES, item.id, "quantity", "abc")
        assert item.quantity == 0
        assert item.total == 0

    def test_description_edit_keeps_total(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        form.update_line_item(Section.DELIVERIES, item.id, "cost", 7)
        form.update_line_item(Section.DELIVERIES, item.id, "description", "Tofu")
        assert item.description == "Tofu"
        assert item.total == 7

    def test_total_invariant_holds_after_every_edit(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.RETURNS)
        edits = [("quantity", 3), ("cost", 1.2), ("quantity", 0), ("cost", 9), ("quantity", 2.5)]
        for name, value in edits:
            form.update_line_item(Section.RETURNS, item.id, name, value)
            assert item.total == pytest.approx(item.quantity * item.cost)

    def test_update_unknown_item(self, form: InvoiceForm) -> None:
        assert form.update_line_item(Section.DELIVERIES, "missing", "cost", 1) is None

    def test_update_unknown_field(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        with pytest.raises(KeyError):
            form.update_line_item(Section.DELIVERIES, item.id, "total", 99)

    def test_remove_item(self, form: InvoiceForm) -> None:
        keep = form.add_line_item(Section.DELIVERIES)
        drop = form.add_line_item(Section.DELIVERIES)
        assert form.remove_line_item(Section.DELIVERIES, drop.id) is True
        assert form.data.deliveries == [keep]

    def test_remove_unknown_item(self, form: InvoiceForm) -> None:
        form.add_line_item(Section.DELIVERIES)
        assert form.remove_line_item(Section.DELIVERIES, "missing") is False
        assert len(form.data.deliveries) == 1

    def test_sections_are_independent(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        assert form.remove_line_item(Section.RETURNS, item.id) is False
        assert form.data.deliveries == [item]


class TestTotals:
    """Tests for subtotals and net total."""

    def test_section_total(self, invoice: InvoiceData) -> None:
        assert section_total(invoice.deliveries) == pytest.approx(103.5)
        assert section_total([]) == 0

    def test_net_total(self, invoice: InvoiceData) -> None:
        totals = compute_totals(invoice)
        assert totals.delivery_total == pytest.approx(103.5)
        assert totals.returns_total == pytest.approx(30.5)
        assert totals.net_total == pytest.approx(73.0)

    def test_net_total_can_be_negative(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.RETURNS)
        form.update_line_item(Section.RETURNS, item.id, "cost", 12)
        assert form.totals.net_total == -12

    def test_totals_follow_edits(self, form: InvoiceForm) -> None:
        item = form.add_line_item(Section.DELIVERIES)
        form.update_line_item(Section.DELIVERIES, item.id, "cost", 10)
        assert form.totals.delivery_total == 10
        form.remove_line_item(Section.DELIVERIES, item.id)
        assert form.totals.delivery_total == 0


class TestHeaderFields:
    """Tests for header edits and vendor auto-fill."""

    def test_set_field(self, form: InvoiceForm) -> None:
        form.set_field("delivery_location", "Worldfoods")
        assert form.data.delivery_location == "Worldfoods"

    def test_unknown_field(self, form: InvoiceForm) -> None:
        with pytest.raises(KeyError):
            form.set_field("deliveries", "x")

    def test_vendor_autofill_ignores_case(self, form: InvoiceForm) -> None:
        form.set_field("vendor_name", "acme foods")
        assert form.data.vendor_name == "acme foods"
        assert form.data.vendor_email == "orders@acme.test"

    def test_no_autofill_for_partial_match(self, form: InvoiceForm) -> None:
        form.set_field("vendor_name", "Acme")
        assert form.data.vendor_email == ""

    def test_no_autofill_without_directory(self) -> None:
        form = InvoiceForm.blank()
        form.set_field("vendor_name", "Acme Foods")
        assert form.data.vendor_email == ""

    def test_edit_clears_field_error(self, form: InvoiceForm) -> None:
        form.errors = FormErrors(vendor_name="Vendor name is required", invoice_number="x")
        form.set_field("vendor_name", "Someone")
        assert form.errors.vendor_name is None
        assert form.errors.invoice_number == "x"

    def test_regenerate_invoice_number(self, form: InvoiceForm) -> None:
        number = form.regenerate_invoice_number()
        assert form.data.invoice_number == number
        assert re.fullmatch(r"INV-\d{6}-\d{4}", number)


class TestApplyExtraction:
    """Tests for merging OCR results into a draft."""

    def test_overwrites_header_fields(self, form: InvoiceForm) -> None:
        item = LineItem(quantity=2, cost=3, description="Eggs")
        item.recalculate()
        form.apply_extraction(
            {
                "invoice_number": "A-77",
                "date": "2024-02-01",
                "vendor_name": "Acme Foods",
                "vendor_email": "",
                "deliveries": [item],
                "returns": [],
            }
        )
        assert form.data.invoice_number == "A-77"
        assert form.data.date == "2024-02-01"
        assert form.data.deliveries == [item]

    def test_empty_invoice_number_keeps_current(self, form: InvoiceForm) -> None:
        current = form.data.invoice_number
        form.apply_extraction({"invoice_number": "", "vendor_name": "X"})
        assert form.data.invoice_number == current

    def test_empty_deliveries_keep_existing_items(self, form: InvoiceForm) -> None:
        existing = form.add_line_item(Section.DELIVERIES)
        form.apply_extraction({"invoice_number": "B-1", "deliveries": []})
        assert form.data.deliveries == [existing]

    def test_returns_are_reset(self, form: InvoiceForm) -> None:
        form.add_line_item(Section.RETURNS)
        form.apply_extraction({"returns": []})
        assert form.data.returns == []


class TestModels:
    """Tests for model helpers."""

    def test_line_item_from_dict_recomputes_total(self) -> None:
        item = LineItem.from_dict({"quantity": "4", "cost": 2.5, "total": 1})
        assert item.total == 10
        assert item.id

    def test_invoice_round_trip_through_dict(self, invoice: InvoiceData) -> None:
        restored = InvoiceData.from_dict(invoice.to_dict())
        assert restored == invoice

    def test_invoice_from_partial_dict(self) -> None:
        data = InvoiceData.from_dict({"vendor_name": "Acme", "unknown": 1})
        assert data.vendor_name == "Acme"
        assert data.invoice_number == ""
        assert data.deliveries == []

    def test_to_number(self) -> None:
        assert to_number("3") == 3
        assert to_number(2.5) == 2.5
        assert to_number(None) == 0
        assert to_number("nan") == 0
        assert to_number("x") == 0

    def test_form_errors_as_dict(self) -> None:
        errors = FormErrors(vendor_email="Invalid email format")
        assert errors.as_dict() == {"vendor_email": "Invalid email format"}
        assert not errors.is_empty
        assert FormErrors().is_empty
