"""
Validation rules and CSV template for contact imports.
"""

from typing import Mapping

from contact_import.validation.rules import FieldType, ValidationRule

NAME_MAX_LENGTH = 100


def _phone_has_country_code(value: str, row: Mapping[str, str]) -> str | None:
    if value and not value.startswith("+"):
        return "Phone number must start with + and country code (e.g., +919876543210)"
    return None


def _name_length(value: str, row: Mapping[str, str]) -> str | None:
    if value and len(value) > NAME_MAX_LENGTH:
        return f"Name must be less than {NAME_MAX_LENGTH} characters"
    return None


CONTACT_CSV_RULES: list[ValidationRule] = [
    ValidationRule(
        field="phone_number",
        required=True,
        type=FieldType.PHONE,
        custom=_phone_has_country_code,
    ),
    ValidationRule(field="name", type=FieldType.TEXT, custom=_name_length),
    ValidationRule(field="email", type=FieldType.EMAIL),
    ValidationRule(field="company", type=FieldType.TEXT),
    ValidationRule(field="location", type=FieldType.TEXT),
]

CONTACT_CSV_TEMPLATE: list[dict[str, str]] = [
    {"name": "phone_number", "example": "+919876543210"},
    {"name": "name", "example": "John Doe"},
    {"name": "email", "example": "john@example.com"},
    {"name": "company", "example": "Acme Inc"},
    {"name": "location", "example": "Mumbai, India"},
]
