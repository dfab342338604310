"""Phone number formatting helpers."""

import re

_NON_DIGITS = re.compile(r"\D")


def digits_only(phone: str) -> str:
    """Strip everything except digits."""
    return _NON_DIGITS.sub("", phone or "")


def normalize_e164(phone: str | None) -> str:
    """Normalize to E.164, assuming NANP for 10-digit numbers.

    Returns an empty string when there are no digits at all.
    """
    digits = digits_only(phone or "")
    if not digits:
        return ""
    if len(digits) == 10:
        digits = "1" + digits
    return f"+{digits}"


def national_number(phone: str) -> str:
    """Digits without a leading NANP country code."""
    digits = digits_only(phone)
    if digits.startswith("1") and len(digits) == 11:
        return digits[1:]
    return digits


def phone_variations(phone: str) -> list[str]:
    """Formats a client's phone might have been typed in.

    Example for "+15551234567":
        ["+15551234567", "5551234567", "(555) 123-4567",
         "555-123-4567", "555.123.4567"]
    """
    national = national_number(phone)
    candidates = [phone, national, f"+1{national}"]
    if len(national) == 10:
        area, prefix, line = national[:3], national[3:6], national[6:]
        candidates += [
            f"({area}) {prefix}-{line}",
            f"{area}-{prefix}-{line}",
            f"{area}.{prefix}.{line}",
        ]

    variations: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variations:
            variations.append(candidate)
    return variations
