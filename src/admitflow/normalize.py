"""
Numeric score parsing and GPA normalization.

Score fields are stored as short strings exactly as they were written
("3.9", "1550", "95/100"). :func:`parse_number` reads the first number out
of such a string; :func:`normalize_gpa` repairs the GPA mistakes that the
forum data is known to contain. The verifier runs the GPA repair before
its range rules so that fixable values are rescaled instead of deleted.
"""

import re
from typing import Optional

# Inclusive bounds for each score
GPA_RANGE = (0.0, 5.0)
GPA_VERIFIED_MAX = 4.33
SAT_RANGE = (400, 1600)
ACT_RANGE = (1, 36)
TOEFL_RANGE = (60, 120)

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?|\.\d+")


def parse_number(value) -> Optional[float]:
    """Return the first number in ``value``, or ``None`` if there is none.

    >>> parse_number("3.95 UW")
    3.95
    >>> parse_number(".") is None
    True
    """
    if value is None:
        return None
    match = _NUMBER_RE.search(str(value))
    return float(match.group(0)) if match else None


def in_range(number, bounds) -> bool:
    low, high = bounds
    return low <= number <= high


def _fmt(number) -> str:
    return f"{number:.2f}"


def normalize_gpa(value) -> Optional[str]:
    """Repair a GPA string, returning the value to store.

    Rules, applied in order:

    1. Strings without a number (including the bare ``"."`` artifact) are
       returned unchanged; rejecting them is the verifier's job.
    2. ``0 < gpa < 1`` is a shifted decimal point and is multiplied by 10.
    3. ``gpa > 100`` is an SAT score in the wrong field and is cleared.
    4. ``5 < gpa <= 100`` is a percentage and is rescaled with ``/ 100 * 4``.
    5. Anything still above :data:`GPA_VERIFIED_MAX` is a weighted GPA on a
       5-point scale and is cleared.

    Values that need no repair are returned as written.

    :param value: Raw GPA string, or ``None``.
    :type value: str or None
    :returns: Normalized GPA string, the original value, or ``None``.
    :rtype: str or None
    """
    number = parse_number(value)
    if number is None:
        return value

    repaired = number
    if 0 < repaired < 1:
        repaired *= 10

    if repaired > 100:
        return None
    if repaired > GPA_RANGE[1]:
        repaired = repaired / 100 * 4
    if repaired > GPA_VERIFIED_MAX:
        return None

    return value if repaired == number else _fmt(repaired)
