"""
QR payload recovery.

Kiosk scanners emit well-formed JSON, near-JSON with doubled characters or
punctuation, or plain text. recover_payload() turns any of these into a
best-guess identifier mapping with the keys ``id``, ``studentNo`` or ``raw``.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from visitlog.utils.string_utils import collapse_repeats, strip_edge_punctuation, strip_non_alnum

logger = logging.getLogger(__name__)

# Tried in this order; the first key that yields a value wins
FUZZY_KEYS = ('studentno', 'student_no', 'id', 'studentid', 'student')

_SKIP_AFTER_COLON = ' \t:\\"\''
_VALUE_TERMINATORS = (',', '}', '\n', '\r')
_TOKEN_PATTERN = re.compile(r'[A-Za-z0-9\-]{4,}')
_LETTER = re.compile(r'[A-Za-z]')
_DIGIT = re.compile(r'\d')
_DASH_RUN = re.compile(r'[-_]{2,}')
_SPACE_RUN = re.compile(r'\s{2,}')

_PUNCTUATION_REPAIRS = (
    (re.compile(r'\{\{+'), '{'),
    (re.compile(r'\}\}+'), '}'),
    (re.compile(r'::+'), ':'),
    (re.compile(r',,+'), ','),
    (re.compile(r'""+'), '"'),
)


def canonical_key(key: str) -> str:
    """Map a (possibly noisy) object key onto ``studentNo``, ``id`` or its cleaned form."""
    normalized = strip_non_alnum(collapse_repeats(key).lower())
    if 'studentno' in normalized or ('student' in normalized and 'no' in normalized):
        return 'studentNo'
    if normalized == 'student':
        return 'studentNo'
    if 'id' in normalized:
        return 'id'
    return normalized


def normalize_value(value: Any, collapse: bool = True) -> Any:
    """
    Clean a parsed value: strings lose scanner noise, containers are walked recursively.

    With ``collapse`` off, strings are only trimmed of whitespace and edge
    punctuation so well-formed identifiers such as "S25-281101" keep their
    repeated digits.
    """
    if isinstance(value, str):
        if not collapse:
            return strip_edge_punctuation(value.strip())
        cleaned = collapse_repeats(value)
        cleaned = _DASH_RUN.sub('-', cleaned)
        cleaned = _SPACE_RUN.sub(' ', cleaned).strip()
        return strip_edge_punctuation(cleaned)
    if isinstance(value, dict):
        return normalize_parsed(value, collapse)
    if isinstance(value, list):
        return [normalize_value(item, collapse) for item in value]
    return value


def normalize_parsed(parsed: Dict[str, Any], collapse: bool = True) -> Dict[str, Any]:
    """Normalize every key and value of a parsed QR object."""
    result = {}
    for key, value in parsed.items():
        result[canonical_key(str(key))] = normalize_value(value, collapse)
    return result


def _identifier_fields(normalized: Dict[str, Any]) -> Dict[str, str]:
    payload = {}
    for key in ('id', 'studentNo'):
        value = normalized.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            if text:
                payload[key] = text
    return payload


def _has_doubled_keys(parsed: Dict[str, Any]) -> bool:
    """True when an identifier key carries scanner doubling, e.g. "ssttuuddeennttNNoo"."""
    for key in parsed:
        key = str(key)
        if canonical_key(key) in ('id', 'studentNo') and collapse_repeats(key) != key:
            return True
    return False


def _try_parse_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def repair_punctuation(text: str) -> str:
    """Collapse doubled JSON punctuation so a second parse attempt can succeed."""
    for pattern, replacement in _PUNCTUATION_REPAIRS:
        text = pattern.sub(replacement, text)
    return text


def fuzzy_key_positions(haystack: str, needle: str) -> List[int]:
    """
    Find every place ``needle`` occurs in ``haystack``, ignoring case and allowing repeats.

    The haystack may contain extra consecutive copies of the character the
    needle currently expects ("ssttuuddeenntt" matches "student"); the needle
    itself is taken literally. Matches must start at a word boundary.

    Args:
        haystack: Text to search; offsets refer to it unchanged
        needle: Lower-cased key name

    Returns:
        End offsets (exclusive) of each match, in order of appearance
    """
    ends = []
    if not needle:
        return ends

    length = len(haystack)
    for start in range(length):
        if haystack[start].lower() != needle[0]:
            continue
        if start > 0 and haystack[start - 1].isalnum():
            continue

        pos = start
        for expected in needle:
            if pos >= length or haystack[pos].lower() != expected:
                break
            pos += 1
            while pos < length and haystack[pos].lower() == expected:
                pos += 1
        else:
            ends.append(pos)
    return ends


def _capture_value(raw: str, key_end: int) -> Optional[str]:
    colon = raw.find(':', key_end)
    if colon == -1:
        return None

    start = colon + 1
    while start < len(raw) and raw[start] in _SKIP_AFTER_COLON:
        start += 1

    end = start
    while end < len(raw):
        if raw[end] in _VALUE_TERMINATORS or raw.startswith('\\n', end):
            break
        end += 1

    value = strip_edge_punctuation(raw[start:end].strip())
    # Identifiers never contain whitespace; anything after it is trailing noise
    parts = value.split()
    value = strip_edge_punctuation(parts[0]) if parts else ''
    if not value:
        return None
    return collapse_repeats(value)


def extract_fuzzy_value(raw: str, key: str) -> Optional[str]:
    """Return the value following a fuzzy match of ``key`` in ``raw``, if any."""
    for key_end in fuzzy_key_positions(raw, key.lower()):
        value = _capture_value(raw, key_end)
        if value:
            return value
    return None


def pick_fallback_token(raw: str) -> Optional[str]:
    """Pick the most student-number-like token (letters and digits) or the longest one."""
    tokens = _TOKEN_PATTERN.findall(raw)
    if not tokens:
        return None

    for token in tokens:
        if _LETTER.search(token) and _DIGIT.search(token):
            return collapse_repeats(token)
    return collapse_repeats(max(tokens, key=len))


def recover_payload(raw: Optional[str]) -> Dict[str, str]:
    """
    Recover a student identifier from a raw QR scan.

    Strategies, stopping at the first success:
    direct JSON parse, JSON parse after punctuation repair, fuzzy key/value
    extraction, alphanumeric token fallback, and finally ``{"raw": input}``.
    Parsed values only have repeated characters collapsed when the input
    shows doubling (doubled identifier keys or punctuation that needed
    repair).

    Args:
        raw: Text produced by the scanning device

    Parsed JSON keeps both ``id`` and ``studentNo`` when present so the
    resolver can fall back to the number when the id is malformed.

    Returns:
        Mapping with ``id`` and/or ``studentNo`` (parsed input), a single
        ``id``/``studentNo``/``raw`` entry (unstructured input), or an empty
        mapping for empty input
    """
    if not raw:
        return {}

    text = str(raw)

    parsed = _try_parse_object(text)
    if parsed is not None:
        return _identifier_fields(normalize_parsed(parsed, collapse=_has_doubled_keys(parsed)))

    parsed = _try_parse_object(repair_punctuation(text))
    if parsed is not None:
        return _identifier_fields(normalize_parsed(parsed))

    for key in FUZZY_KEYS:
        value = extract_fuzzy_value(text, key)
        if value:
            if 'id' in key:
                return {'id': value}
            return {'studentNo': value}

    token = pick_fallback_token(text)
    if token:
        return {'studentNo': token}

    return {'raw': text}
