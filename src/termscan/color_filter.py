"""Row filters over the colour/attribute planes plus screen text cleaning."""
from __future__ import annotations

import re
from typing import Collection, Iterable

from .snapshot import NUL, Plane, ScreenSnapshot

# Characters removed by ``trim``: NUL and every other control character up to space.
_CONTROL_CHARS = "".join(chr(code) for code in range(0x21))

_FILLER_SUFFIX = re.compile(r"\s*([ |\x00]\.|\.[ |\x00])+\s*$")


def trim(text: str) -> str:
    """Strip leading/trailing control characters (including NUL) and spaces."""

    return text.strip(_CONTROL_CHARS)


def is_blank(text: str) -> bool:
    """Return ``True`` when ``text`` holds nothing but NUL/control/space."""

    return not trim(text)


def clean_screen_text(text: str) -> str:
    """Replace NUL cells with spaces and trim the result."""

    return trim(text.replace(NUL, " "))


def clean_label(label: str) -> str:
    """Normalise a label fragment such as ``"Name . . . . :"`` to ``"Name"``.

    Anything up to a stray embedded NUL is dropped, then trailing colons,
    periods and dot fillers are stripped until nothing changes, which keeps the
    function idempotent.
    """

    cleaned = trim(label)
    last_nul = cleaned.rfind(NUL)
    if last_nul != -1:
        cleaned = trim(cleaned[last_nul + 1 :])

    previous = None
    while previous != cleaned:
        previous = cleaned
        cleaned = trim(cleaned).removesuffix(":")
        cleaned = _FILLER_SUFFIX.sub("", trim(cleaned))
        cleaned = trim(cleaned).removesuffix(".")
        cleaned = trim(cleaned).removesuffix(":")
        cleaned = trim(cleaned)
    return cleaned


def next_readable_position(line: str, position: int) -> int:
    """Return the first index at or after ``position`` that is not NUL.

    Returns ``len(line)`` when only NUL remains.
    """

    index = max(position, 0)
    while index < len(line) and line[index] == NUL:
        index += 1
    return index


def _filter_plane(
    snapshot: ScreenSnapshot,
    row: int,
    columns: range,
    plane: Plane,
    accepted: Collection[int],
) -> str:
    if row < 0 or row >= snapshot.rows:
        return ""
    text = snapshot.row_slice(row, columns, Plane.TEXT)
    codes = snapshot.row_slice(row, columns, plane)
    accepted_codes = {int(code) for code in accepted}
    filtered = [
        char if int(code) in accepted_codes else NUL for char, code in zip(text, codes)
    ]
    # Pad to the requested width so callers can index by relative column.
    filtered.extend(NUL for _ in range(len(columns) - len(filtered)))
    return "".join(filtered)


def filter_row(
    snapshot: ScreenSnapshot,
    row: int,
    columns: range,
    accepted_colors: Collection[int],
) -> str:
    """Return ``row`` with every cell whose colour is not accepted replaced by NUL."""

    return _filter_plane(snapshot, row, columns, Plane.COLOR, accepted_colors)


def filter_row_by_attribute(
    snapshot: ScreenSnapshot,
    row: int,
    columns: range,
    accepted_attrs: Collection[int],
) -> str:
    """Return ``row`` keeping only cells drawn with one of ``accepted_attrs``.

    A row whose text is already blank is returned as-is.
    """

    if row < 0 or row >= snapshot.rows:
        return ""
    raw = "".join(snapshot.row_slice(row, columns, Plane.TEXT))
    if is_blank(raw):
        return raw.ljust(len(columns), NUL)
    return _filter_plane(snapshot, row, columns, Plane.ATTR, accepted_attrs)


def filter_rows_by_color(
    snapshot: ScreenSnapshot,
    rows: Iterable[int],
    columns: range,
    accepted_colors: Collection[int],
) -> list[str]:
    """Return the cleaned text of each row in ``rows`` filtered by colour."""

    return [
        clean_screen_text(filter_row(snapshot, row, columns, accepted_colors))
        for row in rows
    ]


__all__ = [
    "clean_label",
    "clean_screen_text",
    "filter_row",
    "filter_row_by_attribute",
    "filter_rows_by_color",
    "is_blank",
    "next_readable_position",
    "trim",
]
