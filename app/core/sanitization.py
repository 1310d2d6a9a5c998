"""Input sanitization and validation utilities."""

import re

import bleach


# Maximum lengths for different field types
MAX_LENGTHS = {
    "username": 100,
    "email": 255,
    "password": 128,
    "default": 255,
}

# Allowed characters patterns
PATTERNS = {
    "username": re.compile(r"^[a-zA-Z0-9\s\-_.']+$"),
}


def sanitize_string(
    value: str,
    max_length: int = MAX_LENGTHS["default"],
    strip_html: bool = True,
) -> str:
    """
    Sanitize a string input.

    - Strips leading/trailing whitespace
    - Removes HTML
    - Collapses internal whitespace
    - Truncates to max length
    """
    if not value:
        return ""

    value = value.strip()

    if strip_html:
        value = bleach.clean(value, tags=[], strip=True)

    value = " ".join(value.split())

    if len(value) > max_length:
        value = value[:max_length]

    return value


def sanitize_username(value: str) -> str:
    """Sanitize a display username."""
    return sanitize_string(value, max_length=MAX_LENGTHS["username"])


def validate_username(value: str) -> bool:
    if not value:
        return False
    return bool(PATTERNS["username"].match(value))


def sanitize_email(value: str) -> str:
    """
    Normalise an email address (trimmed, lower-cased).
    Not passed through bleach: addresses may legally contain & and other
    characters it would escape. Syntax is checked by EmailStr.
    """
    if not value:
        return ""
    return value.strip().lower()


def validate_email(value: str) -> bool:
    """Check an already syntax-checked address fits the stored column."""
    return bool(value) and len(value) <= MAX_LENGTHS["email"]
