"""
Student resolution for scanned QR payloads.

A scanned student number is tried against the directory through an ordered
chain of matchers, cheapest first, until one finds a student.
"""
import logging
import re
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from visitlog.config.settings import Config
from visitlog.utils.string_utils import collapse_repeats, strip_non_alnum

logger = logging.getLogger(__name__)


class StudentNoMatcher(NamedTuple):
    """One step of the student-number cascade."""
    name: str
    build: Callable[[str], Optional[str]]
    fuzzy: bool = False


def exact_form(candidate: str) -> Optional[str]:
    return candidate or None


def collapsed_form(candidate: str) -> Optional[str]:
    return collapse_repeats(candidate) or None


def stripped_form(candidate: str) -> Optional[str]:
    return strip_non_alnum(candidate) or None


def collapsed_stripped_form(candidate: str) -> Optional[str]:
    return strip_non_alnum(collapse_repeats(candidate)) or None


def fuzzy_pattern(candidate: str,
                  min_length: int = None,
                  max_length: int = None) -> Optional[str]:
    """
    Build a case-insensitive search pattern tolerant of doubling and filler.

    Each character of the collapsed, stripped candidate may repeat and may be
    separated from the next by non-word characters, so "S2501" matches
    "S25-01" and "SS25--001". Candidates outside [min_length, max_length]
    produce no pattern.

    Args:
        candidate: Student number as recovered from the scan
        min_length: Shortest candidate allowed to use the pattern
        max_length: Longest candidate allowed to use the pattern

    Returns:
        Regular expression source, or None when the step does not apply
    """
    min_length = Config.FUZZY_MATCH_MIN_LENGTH if min_length is None else min_length
    max_length = Config.FUZZY_MATCH_MAX_LENGTH if max_length is None else max_length

    core = strip_non_alnum(collapse_repeats(candidate))
    if len(core) < min_length or len(core) > max_length:
        return None
    return r'\W*'.join(re.escape(char) + '+' for char in core)


STUDENT_NO_MATCHERS: List[StudentNoMatcher] = [
    StudentNoMatcher('exact', exact_form),
    StudentNoMatcher('collapsed', collapsed_form),
    StudentNoMatcher('stripped', stripped_form),
    StudentNoMatcher('collapsed_stripped', collapsed_stripped_form),
    StudentNoMatcher('fuzzy_pattern', fuzzy_pattern, fuzzy=True),
]


class StudentResolver:
    """Resolve a recovered QR payload to a student record."""

    def __init__(self, directory, matchers: List[StudentNoMatcher] = None):
        """
        Args:
            directory: Student directory exposing ``find_by_id(id)`` and
                ``find_by_student_no(value, fuzzy=False)``
            matchers: Student-number cascade, tried in order
        """
        self.directory = directory
        self.matchers = matchers if matchers is not None else STUDENT_NO_MATCHERS

    def match_student_no(self, candidate: str) -> Optional[Dict[str, Any]]:
        """Run the student-number cascade for one candidate string."""
        if not candidate:
            return None

        tried = set()
        for matcher in self.matchers:
            value = matcher.build(candidate)
            if not value or (value, matcher.fuzzy) in tried:
                continue
            tried.add((value, matcher.fuzzy))

            student = self.directory.find_by_student_no(value, fuzzy=matcher.fuzzy)
            if student:
                logger.info(f"Matched student {student.get('studentNo')} via {matcher.name} lookup")
                return student
        return None

    def resolve(self, payload: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """
        Find the student a payload refers to.

        The ``id`` is tried first as a direct identifier lookup, then
        ``studentNo`` and finally ``raw`` go through the matcher cascade.

        Returns:
            The student record, or None when nothing matches
        """
        if not payload:
            return None

        student_id = payload.get('id')
        if student_id:
            student = self.directory.find_by_id(student_id)
            if student:
                return student

        for key in ('studentNo', 'raw'):
            student = self.match_student_no(payload.get(key))
            if student:
                return student

        logger.warning(f"Student not found for payload: {payload}")
        return None
