"""Configuration management for the SmartInvoice service.

Loads YAML settings into validated pydantic models. Secrets such as the
Gemini API key are read from the environment (optionally via ``.env``)
and never from the YAML file.
"""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")


class FormConfig(BaseModel):
    """Defaults applied to every new invoice draft."""

    default_location: str = "Viendong"
    locations: list[str] = Field(default_factory=lambda: ["Viendong", "Worldfoods"])
    invoice_prefix: str = "INV"


class SheetConfig(BaseModel):
    """Public Google Sheet holding the vendor directory."""

    sheet_id: str = "1leRhIc6X9whceYw9p2uIo8rLyL-mnvP-GMXEkREFb9w"
    sheet_name: str = "DeliveryApp"
    name_column: str = "A"
    email_column: str = "B"
    timeout_s: float = 15.0


class OCRConfig(BaseModel):
    """Settings for the Gemini image-understanding call."""

    model_name: str = "gemini-2.5-flash"
    default_mime_type: str = "image/jpeg"
    max_upload_mb: int = 10


class SignatureConfig(BaseModel):
    """Signature canvas geometry and pen settings."""

    width: int = 600
    height: int = 160
    device_pixel_ratio: float = 1.0
    line_width: float = 2.0
    stroke_color: str = "#000000"


class ValidationConfig(BaseModel):
    """Location of the form rule table."""

    rules_path: str = "configs/form_rules.yaml"


class PDFConfig(BaseModel):
    """PDF export settings."""

    title: str = "DELIVERY INVOICE"
    output_dir: str = "output"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    form: FormConfig = Field(default_factory=FormConfig)
    sheets: SheetConfig = Field(default_factory=SheetConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    signature: SignatureConfig = Field(default_factory=SignatureConfig)
    pdf: PDFConfig = Field(default_factory=PDFConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()


def get_api_key() -> str | None:
    """Return the Gemini API key from the environment, if any.

    A ``.env`` file in the working directory is honoured but never
    overrides variables that are already set.
    """
    load_dotenv(override=False)
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None
