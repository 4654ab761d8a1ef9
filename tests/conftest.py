"""Shared test fixtures for the SmartInvoice test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from smart_invoice.invoice.form import InvoiceForm
from smart_invoice.invoice.models import InvoiceData, LineItem, Vendor
from smart_invoice.vendors.sheets import VendorDirectory


@pytest.fixture
def sample_png() -> bytes:
    """A small opaque PNG, usable as a signature or invoice photo."""
    image = np.full((60, 120, 3), 255, dtype=np.uint8)
    image[20:40, 10:110] = 0
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def vendors() -> VendorDirectory:
    return VendorDirectory(
        [
            Vendor("Acme Foods", "orders@acme.test"),
            Vendor("Pho Supply, Inc", "billing@pho.test"),
        ]
    )


@pytest.fixture
def invoice() -> InvoiceData:
    """A filled-in invoice with two deliveries and one return."""
    deliveries = [
        LineItem(quantity=2, description="Rice 25kg", cost=30.5),
        LineItem(quantity=10, description="Fish sauce", cost=4.25),
    ]
    returns = [LineItem(quantity=1, description="Damaged rice", cost=30.5)]
    for item in deliveries + returns:
        item.recalculate()
    return InvoiceData(
        date="2024-01-15",
        invoice_number="INV-240115-0042",
        delivery_location="Viendong",
        vendor_name="Acme Foods",
        vendor_email="orders@acme.test",
        vendor_signer_name="Lan Nguyen",
        receiver_signer_name="Sam Tran",
        deliveries=deliveries,
        returns=returns,
    )


@pytest.fixture
def form(vendors: VendorDirectory) -> InvoiceForm:
    return InvoiceForm.blank(vendors)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
