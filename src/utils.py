"""Shared utilities used across the appointment concierge."""

import re


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0801 234 5678")
        '08012345678'
        >>> normalize_phone("+234 (801) 111-2222")
        '+2348011112222'
        >>> normalize_phone("Not provided")
        ''
    """
    value = value.strip()
    digits = re.sub(r"[^\d]", "", value)
    if value.startswith("+") and digits:
        return "+" + digits
    return digits
