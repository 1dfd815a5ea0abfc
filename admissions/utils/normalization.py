"""Cleanup applied to enquiry form fields before a lead is stored."""

import re
from typing import Optional


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trimmed, lowercased email; None when blank."""
    if not email:
        return None
    return email.strip().lower() or None


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Collapse runs of whitespace in a person or language name."""
    if not name:
        return None
    return " ".join(name.split())


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Strip formatting from a phone number, keeping a leading '+'.

    Enquiries arrive from several countries so no national format is
    enforced, only a plausible digit count (7-15, per E.164).

    Raises:
        ValueError: If the number has too few or too many digits
    """
    if not phone:
        return None

    cleaned = phone.strip()
    prefix = "+" if cleaned.startswith("+") else ""
    digits = re.sub(r"\D", "", cleaned)
    if not 7 <= len(digits) <= 15:
        raise ValueError(f"Invalid phone number '{phone}'.")
    return f"{prefix}{digits}"


def normalize_language(language: Optional[str]) -> str:
    """Title-case a language name, defaulting to English."""
    cleaned = normalize_name(language)
    if not cleaned:
        return "English"
    return cleaned.title()
