"""Detect ``label: value`` and ``label . . . value`` display fields in a text row.

Examples of rows handled here (``~`` marks a NUL cell)::

    "  System: ABCDEFG  "
    "Client ID . . .: 1234567890   ~~Name  . . . .: John Smith"
    "Effective Date . . . .~01/01/2024"
    "Policy/Opt . . : 12345/A"
"""
from __future__ import annotations

import re
from typing import Iterator

from .color_filter import clean_label, clean_screen_text, is_blank, next_readable_position
from .snapshot import NUL

# Label surface patterns, highest priority first.
REGEX_LABEL_COLON = re.compile(r"[^\x00:]*[A-Za-z0-9][^\x00:]*:")
REGEX_LABEL_DOTS = re.compile(r"[A-Za-z0-9][^\x00:]*?(?: ?\.){2,}\x00")
REGEX_LABEL_DOTS_SPACED = re.compile(r"[A-Za-z0-9][^\x00:]*?(?: ?\.){2,} +\x00")

_LABEL_PATTERNS: tuple[re.Pattern[str], ...] = (
    REGEX_LABEL_COLON,
    REGEX_LABEL_DOTS,
    REGEX_LABEL_DOTS_SPACED,
)


def split_panes(line: str, panes: int) -> list[str]:
    """Cut ``line`` into ``panes`` equal slices (the remainder goes unused)."""

    if panes <= 1:
        return [line]
    width = len(line) // panes
    return [line[width * index : width * (index + 1)] for index in range(panes)]


def find_label(line: str) -> re.Match[str] | None:
    """Return the earliest label match in ``line``; ties go to the higher priority pattern."""

    best: re.Match[str] | None = None
    for pattern in _LABEL_PATTERNS:
        matched = pattern.search(line)
        if matched is None:
            continue
        if best is None or matched.start() < best.start():
            best = matched
    return best


def _take_value(rest: str) -> tuple[str, str]:
    """Split ``rest`` into the value that follows a label and the unread remainder.

    Leading spaces and at most one attribute cell (NUL) are skipped; the value
    then runs up to the next NUL.
    """

    index = 0
    while index < len(rest) and rest[index] == " ":
        index += 1
    if index < len(rest) and rest[index] == NUL:
        index += 1
        if index < len(rest) and rest[index] == NUL:
            return "", rest[index:]
        while index < len(rest) and rest[index] == " ":
            index += 1
    end = rest.find(NUL, index)
    if end == -1:
        end = len(rest)
    return rest[index:end], rest[end:]


def _split_parts(text: str) -> list[str]:
    return [part for part in text.split("/") if part]


def _composite_pairs(label: str, rest: str) -> Iterator[tuple[str, str]]:
    yield clean_label(label), clean_screen_text(rest)

    parts = _split_parts(label)
    values = _split_parts(rest)
    if len(parts) == len(values):
        for part, value in zip(parts, values):
            yield clean_label(part), clean_screen_text(value)
        return

    pairs: list[tuple[str, str]] = []
    line = rest
    for part in parts:
        cleaned = clean_label(part)
        if not line:
            pairs.append((cleaned, ""))
            continue
        start = next_readable_position(line, 0)
        if start < len(line):
            end = line.find(NUL, start)
            value = line[start:] if end == -1 else line[start:end]
            line = "" if end == -1 else line[end:]
            pairs.append((cleaned, clean_screen_text(value).removesuffix("/")))
        else:
            pairs.append((cleaned, clean_screen_text(line)))
            line = ""

    if pairs and not is_blank(line):
        last_label, last_value = pairs[-1]
        pairs[-1] = (last_label, f"{last_value} {clean_screen_text(line)}".strip())
    yield from pairs


def extract_read_only_fields(line: str, panes: int = 1) -> list[tuple[str, str]]:
    """Return ordered ``(label, value)`` display pairs found in ``line``."""

    fields: list[tuple[str, str]] = []
    if not line:
        return fields

    for pane in split_panes(line, panes):
        remaining = pane
        while remaining:
            matched = find_label(remaining)
            if matched is None:
                break
            label = matched.group(0)
            rest = remaining[matched.end() :]

            if "/" in label:
                fields.extend(
                    pair for pair in _composite_pairs(label, rest) if pair[0]
                )
                break

            value, remaining = _take_value(rest)
            cleaned = clean_label(label)
            if cleaned:
                fields.append((cleaned, clean_screen_text(value)))
    return fields


__all__ = [
    "REGEX_LABEL_COLON",
    "REGEX_LABEL_DOTS",
    "REGEX_LABEL_DOTS_SPACED",
    "extract_read_only_fields",
    "find_label",
    "split_panes",
]
