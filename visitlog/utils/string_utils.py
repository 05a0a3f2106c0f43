"""
String utility functions.
Scanner noise cleanup used by QR payload recovery and student matching.
"""
import re
from typing import Optional

_REPEAT_RUN = re.compile(r'(.)\1+', re.DOTALL)
_NON_ALNUM = re.compile(r'[^a-zA-Z0-9]')
_EDGE_PUNCTUATION = re.compile(r'^[:"\'\s{}]+|[:"\'\s{}]+$')


def collapse_repeats(text: str) -> str:
    """
    Collapse every maximal run of one repeated character into a single instance.

    Models the character doubling introduced by handheld QR scanners,
    e.g. "SSTTUUDD" -> "STUD". Idempotent.

    Args:
        text: Any string

    Returns:
        The collapsed string
    """
    if not text:
        return ""
    return _REPEAT_RUN.sub(r'\1', str(text))


def strip_non_alnum(text: str) -> str:
    """Remove everything except ASCII letters and digits."""
    if not text:
        return ""
    return _NON_ALNUM.sub('', str(text))


def strip_edge_punctuation(text: str) -> str:
    """Trim quotes, braces, colons and whitespace from both ends of a value."""
    if not text:
        return ""
    return _EDGE_PUNCTUATION.sub('', str(text))


def derive_middle_initial(middle_name: Optional[str]) -> str:
    """
    Build the "X." initial shown on ID cards from a middle name.

    Returns an empty string when there is no usable middle name.
    """
    if not middle_name or not isinstance(middle_name, str):
        return ""

    cleaned = middle_name.strip()
    if not cleaned:
        return ""
    return cleaned[0].upper() + "."


def truncate_string(text: str, max_length: int = 100) -> str:
    """
    Truncate string to maximum length.

    Args:
        text: String to truncate
        max_length: Maximum allowed length

    Returns:
        Truncated string
    """
    if not text or not isinstance(text, str):
        return ""

    if len(text) <= max_length:
        return text

    return text[:max_length-3] + "..."
