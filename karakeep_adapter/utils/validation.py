"""
Field validation and formatting helpers for resource handlers.

Handlers validate their own parameters before calling the request facade;
these helpers cover the checks shared between resources.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import urlparse

from karakeep_adapter.utils.error_handler import ValidationError


def validate_url(url: str) -> bool:
    """
    Check that a string parses as an absolute URL.

    Args:
        url: The URL string to validate

    Returns:
        True if the URL has both a scheme and a network location
    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def validate_required_fields(
    data: Dict[str, Any], required_fields: Iterable[str]
) -> List[Dict[str, str]]:
    """
    Report required fields that are missing, None or empty strings.

    Args:
        data: Field values keyed by name
        required_fields: Names that must be present

    Returns:
        List of error dictionaries with field, message and code
    """
    errors = []
    for field_name in required_fields:
        value = data.get(field_name)
        if value is None or value == "":
            errors.append(
                {
                    "field": field_name,
                    "message": f"{field_name} is required",
                    "code": "REQUIRED_FIELD",
                }
            )
    return errors


def require_fields(data: Dict[str, Any], required_fields: Iterable[str]) -> None:
    """
    Raise a ValidationError listing every missing required field.

    Raises:
        ValidationError: If any required field is missing
    """
    errors = validate_required_fields(data, required_fields)
    if errors:
        raise ValidationError(
            f"Validation failed: {', '.join(e['message'] for e in errors)}",
            field=errors[0]["field"],
            details={"errors": errors},
        )


def require_id(value: Optional[str], label: str) -> str:
    """Return a stripped identifier or raise ``"<label> is required"``."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    return str(value).strip()


def parse_tags_string(tags: Union[str, Iterable[str], None]) -> List[str]:
    """
    Parse a comma-separated string of tags into a list.

    Lists are accepted too and are cleaned the same way.

    Args:
        tags: "a, b,c" style string or an iterable of names

    Returns:
        Non-empty, stripped tag names in input order
    """
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [str(tag).strip() for tag in tags if str(tag).strip()]


def parse_id_list(ids: Union[str, Iterable[str], None]) -> List[str]:
    """Parse comma-separated identifiers; same rules as tag names."""
    return parse_tags_string(ids)


def format_date_for_api(value: Union[str, date, datetime]) -> str:
    """
    Format a date as an ISO-8601 UTC timestamp with millisecond precision.

    Naive values are taken to be UTC. Strings may use a trailing ``Z``.

    Args:
        value: ISO date string, date or datetime

    Returns:
        String such as ``2024-01-15T10:30:00.000Z``

    Raises:
        ValidationError: If a string cannot be parsed as a date
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")
    elif isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        raise ValidationError(f"Invalid date: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)

    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def non_empty(value: Optional[str]) -> Optional[str]:
    """Return the stripped string, or None when it is empty or missing."""
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None
