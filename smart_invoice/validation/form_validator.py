"""Required-field validation for invoice drafts.

Rules are table-driven: each form field maps to a list of rule specs
(``{"type": "required", "message": ...}``). The default table can be
replaced from a YAML file. The first failing rule of a field wins.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from smart_invoice.invoice.models import FormErrors, InvoiceData
from smart_invoice.utils.logger import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SIGNATURES_REQUIRED_MESSAGE = "Both signatures are required."
FIX_ERRORS_MESSAGE = "Please fix errors before submitting."

DEFAULT_RULES: dict[str, list[dict[str, str]]] = {
    "vendor_name": [{"type": "required", "message": "Vendor name is required"}],
    "invoice_number": [{"type": "required", "message": "Invoice number is required"}],
    "vendor_email": [
        {"type": "required", "message": "Vendor email is required"},
        {"type": "email", "message": "Invalid email format"},
    ],
    "date": [
        {"type": "required", "message": "Invalid date"},
        {"type": "iso_date", "message": "Invalid date"},
    ],
}


@dataclass
class ValidationResult:
    """Outcome of one rule applied to one field."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


@dataclass
class ValidationReport:
    """All rule outcomes for an invoice plus the per-field error map."""

    all_valid: bool
    results: list[ValidationResult]
    errors: FormErrors = field(default_factory=FormErrors)


class FormValidator:
    """Applies field rules to an ``InvoiceData``.

    Args:
        rules_path: Optional YAML file replacing the default rule table.
    """

    def __init__(self, rules_path: Path | None = None) -> None:
        self.rules = self._load_rules(rules_path)
        self._validators: dict[str, Any] = {
            "required": self._validate_required,
            "email": self._validate_email,
            "iso_date": self._validate_iso_date,
            "regex": self._validate_regex,
        }

    def _load_rules(self, path: Path | None) -> dict[str, list[dict[str, str]]]:
        if path is not None and path.exists():
            with open(path) as f:
                data = yaml.safe_load(f)
            if data:
                logger.info("Loaded form rules from %s", path)
                return data
        return DEFAULT_RULES

    def validate(self, invoice: InvoiceData) -> ValidationReport:
        """Validate an invoice's header fields.

        Returns:
            Report whose ``errors`` holds the first failing message per field.
        """
        results: list[ValidationResult] = []
        errors = FormErrors()

        for field_name, rules in self.rules.items():
            value = getattr(invoice, field_name, None)
            for rule in rules:
                validator = self._validators.get(rule.get("type"))
                if validator is None:
                    logger.warning("Unknown rule type: %s", rule.get("type"))
                    continue
                result = validator(field_name, value, rule)
                results.append(result)
                if not result.is_valid:
                    if hasattr(errors, field_name):
                        setattr(errors, field_name, result.message)
                    break

        all_valid = all(r.is_valid for r in results)
        logger.debug("Form validation %s (%d checks)", "passed" if all_valid else "failed", len(results))
        return ValidationReport(all_valid=all_valid, results=results, errors=errors)

    def _validate_required(self, field_name: str, value: Any, rule: dict) -> ValidationResult:
        if value is not None and str(value).strip():
            return ValidationResult(field_name, True, "Required field present", "required")
        return ValidationResult(
            field_name, False, rule.get("message", f"{field_name} is required"), "required"
        )

    def _validate_email(self, field_name: str, value: Any, rule: dict) -> ValidationResult:
        if not value:
            return ValidationResult(field_name, True, "No value to validate", "email")
        if EMAIL_PATTERN.match(str(value)):
            return ValidationResult(field_name, True, "Valid email format", "email")
        return ValidationResult(
            field_name, False, rule.get("message", "Invalid email format"), "email"
        )

    def _validate_iso_date(self, field_name: str, value: Any, rule: dict) -> ValidationResult:
        if not value:
            return ValidationResult(field_name, True, "No value to validate", "iso_date")
        invalid = ValidationResult(field_name, False, rule.get("message", "Invalid date"), "iso_date")
        if not ISO_DATE_PATTERN.match(str(value)):
            return invalid
        try:
            datetime.strptime(str(value), "%Y-%m-%d")
        except ValueError:
            return invalid
        return ValidationResult(field_name, True, "Valid date", "iso_date")

    def _validate_regex(self, field_name: str, value: Any, rule: dict) -> ValidationResult:
        if not value:
            return ValidationResult(field_name, True, "No value to validate", "regex")
        pattern = rule.get("pattern", "")
        if re.match(pattern, str(value)):
            return ValidationResult(field_name, True, "Matches pattern", "regex")
        return ValidationResult(
            field_name, False, rule.get("message", f"Does not match pattern: {pattern}"), "regex"
        )


def validate_invoice(invoice: InvoiceData) -> FormErrors:
    """Validate with the default rules and return the error map."""
    return FormValidator().validate(invoice).errors
