"""
Sanitization and validation of registration input.

Sanitizing happens first (trim, truncate, strip phone formatting, lower-case
email) so that validation judges exactly what will be stored.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from app.core import constants as c
from app.core.errors import InvalidInput
from app.schemas.registration import RegistrationRequest

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_DIGITS = re.compile(r"\D")

REQUIRED_FIELDS = (
    "event_id",
    "name",
    "gender",
    "profession",
    "phone_number",
    "email",
    "location_preference",
)


@dataclass(frozen=True)
class RegistrationFields:
    """Sanitized, validated registration input."""

    event_id: str
    name: str
    gender: str
    profession: str
    phone_number: str
    email: str
    location_preference: str
    needs_directions: bool = False
    notes: Optional[str] = None


def sanitize_string(value: Any, max_length: int) -> str:
    if not value:
        return ""
    return str(value).strip()[:max_length]


def sanitize_phone(value: Any) -> str:
    if not value:
        return ""
    return NON_DIGITS.sub("", str(value))


def normalize_email(value: Any) -> str:
    if not value:
        return ""
    return str(value).strip().lower()[: c.EMAIL_MAX]


def validate_registration(data: RegistrationRequest) -> RegistrationFields:
    """
    Sanitize and validate a registration request.

    Raises:
        InvalidInput: with the first failing field's reason as the message and
            every field error under details.
    """
    missing = [field for field in REQUIRED_FIELDS if not getattr(data, field)]
    if missing:
        raise InvalidInput("missing required fields", details={f: "required" for f in missing})

    errors: dict[str, str] = {}

    name = sanitize_string(data.name, c.NAME_MAX)
    if not name:
        errors["name"] = "name is required"

    email = normalize_email(data.email)
    if not email or not EMAIL_REGEX.match(email):
        errors["email"] = "invalid email format"

    phone = sanitize_phone(data.phone_number)
    if not phone:
        errors["phone_number"] = "phone number must contain only digits"
    elif not c.PHONE_MIN <= len(phone) <= c.PHONE_MAX:
        errors["phone_number"] = (
            f"phone number must be between {c.PHONE_MIN} and {c.PHONE_MAX} digits"
        )

    gender = sanitize_string(data.gender, 50).lower()
    if gender not in c.VALID_GENDERS:
        errors["gender"] = "invalid gender selection"

    profession = sanitize_string(data.profession, c.PROFESSION_MAX)
    if not profession:
        errors["profession"] = "profession is required"

    location = sanitize_string(data.location_preference, 50).lower()
    if location not in c.VALID_LOCATIONS:
        errors["location_preference"] = "invalid location preference"

    notes = None
    if data.notes:
        notes = str(data.notes).strip()
        if len(notes) > c.NOTES_MAX:
            errors["notes"] = f"notes cannot exceed {c.NOTES_MAX} characters"

    event_id = sanitize_string(data.event_id, 100)
    if not event_id:
        errors["event_id"] = "event id is required"

    if errors:
        raise InvalidInput(next(iter(errors.values())), details=errors)

    return RegistrationFields(
        event_id=event_id,
        name=name,
        gender=gender,
        profession=profession,
        phone_number=phone,
        email=email,
        location_preference=location,
        needs_directions=bool(data.needs_directions),
        notes=notes or None,
    )
