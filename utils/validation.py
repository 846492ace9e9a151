"""
Input validation utilities for booking form data.
"""

import re
from typing import Optional


def clean_identifier(value) -> Optional[str]:
    """
    Normalize a record ID from form input.

    Args:
        value: Raw ID (string, number or None)

    Returns:
        Stripped ID string, or None when blank
    """
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]', '', str(text))

    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
