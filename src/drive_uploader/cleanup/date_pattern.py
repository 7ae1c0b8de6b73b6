"""Human date patterns (``yyyy-MM-dd`` style) for folder name matching.

A pattern is made of the tokens ``yyyy``, ``yy``, ``MM`` and ``dd`` plus any
literal text. Matching is total: the whole folder name must fit the pattern
and the digits must form a real calendar date.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class _Token:
    text: str
    directive: str
    regex: str
    field: str


# Longest first: "yyyy" must win over "yy" or four-digit years split in two.
_TOKENS: Tuple[_Token, ...] = (
    _Token("yyyy", "%Y", "[0-9]{4}", "year"),
    _Token("yy", "%y", "[0-9]{2}", "year"),
    _Token("MM", "%m", "[0-9]{2}", "month"),
    _Token("dd", "%d", "[0-9]{2}", "day"),
)

# Fields absent from a pattern. 2000 is a leap year so "MM-dd" accepts 02-29.
_DEFAULTS = {"year": 2000, "month": 1, "day": 1}


def _two_digit_year(value: int) -> int:
    # Same pivot as strptime's %y: 69-99 -> 1900s, 00-68 -> 2000s.
    return 1900 + value if value >= 69 else 2000 + value


def _tokenize(pattern: str) -> List[Tuple[Optional[_Token], str]]:
    segments: List[Tuple[Optional[_Token], str]] = []
    position = 0
    while position < len(pattern):
        for token in _TOKENS:
            if pattern.startswith(token.text, position):
                segments.append((token, token.text))
                position += len(token.text)
                break
        else:
            char = pattern[position]
            if segments and segments[-1][0] is None:
                segments[-1] = (None, segments[-1][1] + char)
            else:
                segments.append((None, char))
            position += 1
    return segments


def translate_pattern(pattern: str) -> str:
    """Translate a human pattern into a ``strftime`` format string.

    >>> translate_pattern("yyyy-MM-dd")
    '%Y-%m-%d'
    >>> translate_pattern("yyMMdd")
    '%y%m%d'
    """
    parts = []
    for token, text in _tokenize(pattern):
        if token is None:
            parts.append(text.replace("%", "%%"))
        else:
            parts.append(token.directive)
    return "".join(parts)


class DatePattern:
    """Compiled date pattern able to match and format folder names."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._segments = _tokenize(pattern)
        self._fields = [token for token, _ in self._segments if token is not None]
        regex = "".join(
            f"({token.regex})" if token is not None else re.escape(text)
            for token, text in self._segments
        )
        self._regex = re.compile(regex)

    def __repr__(self) -> str:
        return f"DatePattern({self.pattern!r})"

    @property
    def has_date_fields(self) -> bool:
        return bool(self._fields)

    @property
    def strftime_format(self) -> str:
        return translate_pattern(self.pattern)

    def matches(self, name: str) -> Tuple[bool, Optional[date]]:
        """Return ``(True, date)`` when ``name`` is exactly a date in this pattern."""
        match = self._regex.fullmatch(name)
        if match is None:
            return False, None

        values = {}
        for token, raw in zip(self._fields, match.groups()):
            value = int(raw)
            if token.text == "yy":
                value = _two_digit_year(value)
            if values.setdefault(token.field, value) != value:
                return False, None

        parts = {**_DEFAULTS, **values}
        try:
            return True, date(parts["year"], parts["month"], parts["day"])
        except ValueError:
            return False, None

    def format(self, value: date) -> str:
        """Render ``value`` in this pattern."""
        rendered = {
            "yyyy": f"{value.year:04d}",
            "yy": f"{value.year % 100:02d}",
            "MM": f"{value.month:02d}",
            "dd": f"{value.day:02d}",
        }
        return "".join(
            rendered[token.text] if token is not None else text
            for token, text in self._segments
        )


__all__ = ["DatePattern", "translate_pattern"]
