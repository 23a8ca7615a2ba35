"""Prefix-tagged match modes used when comparing screen values.

An expectation such as ``"CONTAIN_ANY_CASE:smith"`` selects a comparison
mode; text without a recognised prefix is compared for exact equality.
"""
from __future__ import annotations

import operator
import re
from typing import Callable, Mapping

REGEX = "REGEX:"
CONTAIN = "CONTAIN:"
CONTAIN_ANY_CASE = "CONTAIN_ANY_CASE:"
START = "START:"
START_ANY_CASE = "START_ANY_CASE:"
END = "END:"
END_ANY_CASE = "END_ANY_CASE:"
EXACT = "EXACT:"
LENGTH = "LENGTH:"
EMPTY = "EMPTY:"
BLANK = "BLANK:"
NUMERIC = "NUMERIC:"

# Longer prefixes first so ``CONTAIN_ANY_CASE:`` is not read as ``CONTAIN:``.
MATCH_PREFIXES: tuple[str, ...] = (
    CONTAIN_ANY_CASE,
    START_ANY_CASE,
    END_ANY_CASE,
    CONTAIN,
    START,
    END,
    REGEX,
    EXACT,
    LENGTH,
    EMPTY,
    BLANK,
    NUMERIC,
)

_NUMERIC_COMPARE = re.compile(r"^\s*([><=!]+)\s*([\d\-.]+)\s*$")

_COMPARATORS: Mapping[str, Callable[[float, float], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


def is_poly_matcher(expected: str | None) -> bool:
    """Return ``True`` when ``expected`` carries a match-mode prefix."""

    return bool(expected) and any(expected.startswith(prefix) for prefix in MATCH_PREFIXES)


def _to_bool(text: str) -> bool:
    return text.strip().lower() in {"true", "yes", "y", "1"}


def _compare_number(actual: float, expression: str) -> bool:
    matched = _NUMERIC_COMPARE.match(expression)
    if matched is None:
        try:
            return actual == float(expression.strip())
        except ValueError:
            return False
    comparator = _COMPARATORS.get(matched.group(1))
    if comparator is None:
        return False
    try:
        return comparator(actual, float(matched.group(2)))
    except ValueError:
        return False


def poly_match(actual: str | None, expected: str | None) -> bool:
    """Compare ``actual`` against ``expected`` honouring its match-mode prefix."""

    text = "" if actual is None else actual
    if expected is None:
        return actual is None

    for prefix in MATCH_PREFIXES:
        if not expected.startswith(prefix):
            continue
        operand = expected[len(prefix) :]
        if prefix == REGEX:
            try:
                return re.fullmatch(operand, text, re.DOTALL) is not None
            except re.error:
                return False
        if prefix == CONTAIN:
            return operand in text
        if prefix == CONTAIN_ANY_CASE:
            return operand.lower() in text.lower()
        if prefix == START:
            return text.startswith(operand)
        if prefix == START_ANY_CASE:
            return text.lower().startswith(operand.lower())
        if prefix == END:
            return text.endswith(operand)
        if prefix == END_ANY_CASE:
            return text.lower().endswith(operand.lower())
        if prefix == EXACT:
            return text == operand
        if prefix == LENGTH:
            return _compare_number(float(len(text)), operand)
        if prefix == EMPTY:
            return (text == "") == _to_bool(operand)
        if prefix == BLANK:
            return (text.strip() == "") == _to_bool(operand)
        if prefix == NUMERIC:
            try:
                value = float(text.strip().replace(",", ""))
            except ValueError:
                return False
            return _compare_number(value, operand)

    return text == expected


__all__ = [
    "BLANK",
    "CONTAIN",
    "CONTAIN_ANY_CASE",
    "EMPTY",
    "END",
    "END_ANY_CASE",
    "EXACT",
    "LENGTH",
    "MATCH_PREFIXES",
    "NUMERIC",
    "REGEX",
    "START",
    "START_ANY_CASE",
    "is_poly_matcher",
    "poly_match",
]
