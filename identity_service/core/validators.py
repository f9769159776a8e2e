"""Input validation helpers for user creation payloads."""
from __future__ import annotations
from typing import Any, Optional

from identity_service.core.errors import ValidationError

REQUIRED_USER_FIELDS = ("email", "firstName", "lastName")


def _clean(value: Any) -> Optional[str]:
    """Trimmed string, or None for missing, blank or non-string values."""
    if not isinstance(value, str):
        return None
    return value.strip() or None


def validate_new_user(payload: Any) -> dict[str, Optional[str]]:
    """Validate a create-user request body.

    Args:
        payload: Decoded JSON body with email, firstName, lastName and optional phone

    Returns:
        Dict with trimmed ``email``, ``firstName``, ``lastName`` and ``phone``

    Raises:
        ValidationError: If a required field is missing or blank
    """
    if not isinstance(payload, dict):
        raise ValidationError()

    cleaned = {field: _clean(payload.get(field)) for field in REQUIRED_USER_FIELDS}
    if not all(cleaned.values()):
        raise ValidationError()

    cleaned["phone"] = _clean(payload.get("phone"))
    return cleaned
