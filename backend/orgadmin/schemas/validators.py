"""Reusable Pydantic validators for input validation.

Provides validators for the identifiers and free-text fields the admin
API accepts:
- Slugs (resources, actions, organizations)
- Phone numbers
- String sanitization
"""

import re

# Regex patterns
SLUG_REGEX = re.compile(r"^[a-z0-9]+(?:[-_][a-z0-9]+)*$")
PHONE_REGEX = re.compile(r"^\+?[1-9]\d{1,14}$")  # E.164 format

# XSS patterns
XSS_PATTERNS = [
    r"<script[^>]*>.*?</script>",
    r"javascript:",
    r"on\w+\s*=",
    r"<iframe",
]


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """Sanitize string input.

    Args:
        value: Input string
        max_length: Maximum allowed length

    Returns:
        Sanitized string

    Raises:
        ValueError: If validation fails
    """
    value = value.strip()

    if not value:
        raise ValueError("Value is required")

    if len(value) > max_length:
        raise ValueError(f"String too long (max {max_length} characters)")

    for pattern in XSS_PATTERNS:
        if re.search(pattern, value, re.IGNORECASE):
            raise ValueError("Invalid characters detected")

    return value


def validate_slug(value: str) -> str:
    """Validate a slug: lowercase letters, digits, single '-' or '_' separators.

    The reserved wildcard slugs ("*", "manage") are provisioned by the CLI
    and cannot be created through the API; "*" already fails the pattern.
    """
    value = value.strip().lower()

    if not value:
        raise ValueError("Slug is required")

    if len(value) > 100:
        raise ValueError("Slug too long (max 100 characters)")

    if not SLUG_REGEX.match(value):
        raise ValueError(
            "Slug may only contain lowercase letters, digits, '-' and '_'"
        )

    return value


def validate_phone(value: str | None) -> str | None:
    """Validate phone number (E.164 format).

    Args:
        value: Phone number

    Returns:
        Normalized phone number

    Raises:
        ValueError: If phone is invalid
    """
    if value is None:
        return None

    value = re.sub(r"[\s\-()]", "", value)
    if not value:
        return None

    if not PHONE_REGEX.match(value):
        raise ValueError("Invalid phone number format (use E.164: +1234567890)")

    return value
