"""
Utility helper functions for safe feed data handling.
"""
from typing import Any, Optional


def safe_str(value: Any, default: str = "") -> str:
    """
    Safely convert value to string, handling None.

    Args:
        value: Any value to convert
        default: Default string if value is None

    Returns:
        String representation or default
    """
    if value is None:
        return default
    return str(value)


def safe_lower(value: Any) -> str:
    """
    Safely lowercase a value, handling None.

    Args:
        value: Any value to lowercase

    Returns:
        Lowercased string or empty string if None
    """
    if value is None:
        return ""
    return str(value).lower()


def optional_int(value: Any) -> Optional[int]:
    """
    Convert a feed value to int, or None when absent or malformed.

    Booleans are rejected; numeric strings ("12") and integral floats are
    accepted since the feed is not strict about either.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
            return int(number) if number.is_integer() else None
    return None


def first_present(raw: dict, *keys: str) -> Any:
    """Return the value of the first key that is present and not None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None
