"""
Version comparison.

Versions are compared segment by segment after splitting on '.' and '-',
never as plain strings, so "0.9" sorts before "0.60". A trailing qualifier
("-beta", "rc1") is stripped, and missing trailing segments count as zero,
so "1.2", "1.2.0" and "1.2.0-beta" are all equal.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple, Union

Segment = Union[int, str]

_SEPARATORS = re.compile(r"[.\-]")
_LEADING_DIGITS = re.compile(r"\d+")


class Comparison(Enum):
    """Result of comparing two versions."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


def parse_segments(version: str) -> Tuple[Segment, ...]:
    """Split a version string into comparable segments."""
    text = version.strip()
    if text[:1] in ('v', 'V') and text[1:2].isdigit():
        text = text[1:]

    segments: List[Segment] = []
    numeric = False
    for part in _SEPARATORS.split(text):
        if not part:
            continue
        match = _LEADING_DIGITS.match(part)
        if match is None:
            if numeric:
                break  # trailing qualifier
            segments.append(part)
            continue
        numeric = True
        segments.append(int(match.group()))
        if match.end() != len(part):
            break  # "0rc1" keeps 0 and ends the version

    while len(segments) > 1 and segments[-1] == 0:
        segments.pop()
    return tuple(segments)


def _compare_segment(left: Segment, right: Segment) -> int:
    if isinstance(left, int) and isinstance(right, int):
        return (left > right) - (left < right)
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    # Numeric segments outrank textual ones
    return 1 if isinstance(left, int) else -1


def compare(a: Optional[str], b: Optional[str]) -> Comparison:
    """
    Compare two version strings.

    A missing `a` is always LESS: an absent tool needs an update.
    """
    if a is None or not a.strip():
        return Comparison.LESS
    if a == b:
        return Comparison.EQUAL
    if b is None or not b.strip():
        return Comparison.GREATER

    left, right = parse_segments(a), parse_segments(b)
    width = max(len(left), len(right))
    left = left + (0,) * (width - len(left))
    right = right + (0,) * (width - len(right))

    for l_seg, r_seg in zip(left, right):
        result = _compare_segment(l_seg, r_seg)
        if result:
            return Comparison.GREATER if result > 0 else Comparison.LESS
    return Comparison.EQUAL


def is_older(current: Optional[str], required: str) -> bool:
    """True when `current` is missing or older than `required`."""
    return compare(current, required) is Comparison.LESS


def satisfies(current: Optional[str], minimum: str) -> bool:
    """True when `current` is at least `minimum`."""
    return not is_older(current, minimum)
