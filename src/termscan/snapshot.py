"""Read-only 5250 screen snapshots and an in-memory canvas to draw them."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Protocol, Sequence

NUL = "\x00"


class Plane(IntEnum):
    """Parallel data planes exposed by a terminal snapshot."""

    TEXT = 0
    COLOR = 1
    ATTR = 2
    GRAPHIC = 3


class Colour(IntEnum):
    """Foreground colours reported on the colour plane."""

    BLACK = 0
    BLUE = 1
    GREEN = 2
    CYAN = 3
    RED = 4
    MAGENTA = 5
    YELLOW = 6
    WHITE = 7


# 5250 display attributes (hex 0x20 family).  Column headings are drawn with the
# high-intensity attribute, which is what table detection keys on.
ATTR_NORMAL = 32
ATTR_REVERSE = 33
ATTR_HIGH_INTENSITY = 34
ATTR_UNDERLINE = 36
ATTR_NON_DISPLAY = 39


class Graphic(IntEnum):
    """Window border glyphs found on the extended graphic plane."""

    NONE = 0
    UPPER_LEFT = 1
    UPPER = 2
    UPPER_RIGHT = 3
    GUI_LEFT = 4
    GUI_RIGHT = 5
    LOWER_LEFT = 6
    BOTTOM = 7
    LOWER_RIGHT = 8


_COLOUR_CODES: Mapping[str, Colour] = MappingProxyType(
    {
        "k": Colour.BLACK,
        "b": Colour.BLUE,
        "g": Colour.GREEN,
        "c": Colour.CYAN,
        "r": Colour.RED,
        "m": Colour.MAGENTA,
        "y": Colour.YELLOW,
        "w": Colour.WHITE,
    }
)

_ATTR_CODES: Mapping[str, int] = MappingProxyType(
    {
        ".": ATTR_NORMAL,
        "r": ATTR_REVERSE,
        "h": ATTR_HIGH_INTENSITY,
        "u": ATTR_UNDERLINE,
        "n": ATTR_NON_DISPLAY,
    }
)


class SnapshotFormatError(ValueError):
    """Raised when a serialised snapshot document fails validation."""


@dataclass(frozen=True)
class EditableField:
    """Input field descriptor reported by the terminal session."""

    start_row: int
    start_col: int
    length: int
    bypass: bool = False
    text: str = ""

    @property
    def end_col(self) -> int:
        """Return the exclusive column where the field ends."""

        return self.start_col + self.length

    @property
    def value(self) -> str:
        """Return the field content without padding."""

        return self.text.replace(NUL, " ").strip()


class ScreenSnapshot(Protocol):
    """Capability consumed by the extraction engine."""

    @property
    def rows(self) -> int: ...

    @property
    def columns(self) -> int: ...

    def row_slice(self, row: int, columns: range, plane: Plane) -> tuple[Any, ...]: ...

    def editable_fields(self) -> tuple[EditableField, ...]: ...


def _clamp_columns(columns: range, width: int) -> range:
    return range(max(0, columns.start), max(0, min(columns.stop, width)))


@dataclass(frozen=True)
class GridSnapshot:
    """Immutable rectangular frame with text, colour, attribute and graphic planes."""

    text: tuple[str, ...]
    colours: tuple[tuple[int, ...], ...]
    attrs: tuple[tuple[int, ...], ...]
    graphics: tuple[tuple[int, ...], ...]
    fields: tuple[EditableField, ...] = ()

    @property
    def rows(self) -> int:
        return len(self.text)

    @property
    def columns(self) -> int:
        return len(self.text[0]) if self.text else 0

    def row_slice(self, row: int, columns: range, plane: Plane) -> tuple[Any, ...]:
        """Return ``plane`` values for ``row`` within ``columns``.

        Rows outside the frame yield an empty tuple; columns are clamped to the
        frame width so callers can pass a generous range.
        """

        if row < 0 or row >= self.rows:
            return ()
        span = _clamp_columns(columns, self.columns)
        if plane is Plane.TEXT:
            return tuple(self.text[row][span.start : span.stop])
        if plane is Plane.COLOR:
            return self.colours[row][span.start : span.stop]
        if plane is Plane.ATTR:
            return self.attrs[row][span.start : span.stop]
        return self.graphics[row][span.start : span.stop]

    def editable_fields(self) -> tuple[EditableField, ...]:
        return self.fields


def screen_lines(snapshot: ScreenSnapshot) -> list[str]:
    """Return the text plane as printable lines (NUL shown as space)."""

    full = range(0, snapshot.columns)
    return [
        "".join(snapshot.row_slice(row, full, Plane.TEXT)).replace(NUL, " ")
        for row in range(snapshot.rows)
    ]


def screen_text(snapshot: ScreenSnapshot) -> str:
    """Return the whole text plane joined by newlines."""

    return "\n".join(screen_lines(snapshot))


@dataclass
class ScreenBuilder:
    """Mutable canvas used to compose snapshots cell by cell.

    Every cell starts as NUL text on a green, normal-attribute background with
    no graphic glyph.  ``snapshot()`` freezes the current state.
    """

    rows: int = 24
    columns: int = 80
    _text: list[list[str]] = field(init=False, repr=False)
    _colours: list[list[int]] = field(init=False, repr=False)
    _attrs: list[list[int]] = field(init=False, repr=False)
    _graphics: list[list[int]] = field(init=False, repr=False)
    _fields: list[EditableField] = field(init=False, repr=False, default_factory=list)

    def __post_init__(self) -> None:
        if self.rows < 0 or self.columns < 0:
            raise ValueError("screen dimensions must not be negative")
        self._text = [[NUL] * self.columns for _ in range(self.rows)]
        self._colours = [[int(Colour.GREEN)] * self.columns for _ in range(self.rows)]
        self._attrs = [[ATTR_NORMAL] * self.columns for _ in range(self.rows)]
        self._graphics = [[int(Graphic.NONE)] * self.columns for _ in range(self.rows)]

    def _in_bounds(self, row: int, column: int) -> bool:
        return 0 <= row < self.rows and 0 <= column < self.columns

    def write(
        self,
        row: int,
        column: int,
        text: str,
        *,
        colour: int = Colour.GREEN,
        attr: int = ATTR_NORMAL,
    ) -> "ScreenBuilder":
        """Draw ``text`` starting at ``(row, column)``; cells past the edge are dropped."""

        for offset, char in enumerate(text):
            x = column + offset
            if not self._in_bounds(row, x):
                continue
            self._text[row][x] = char
            self._colours[row][x] = int(colour)
            self._attrs[row][x] = int(attr)
        return self

    def paint(
        self,
        row: int,
        columns: range,
        *,
        colour: int | None = None,
        attr: int | None = None,
    ) -> "ScreenBuilder":
        """Recolour or re-attribute existing cells without touching their text."""

        for x in columns:
            if not self._in_bounds(row, x):
                continue
            if colour is not None:
                self._colours[row][x] = int(colour)
            if attr is not None:
                self._attrs[row][x] = int(attr)
        return self

    def add_field(
        self,
        row: int,
        column: int,
        length: int,
        text: str = "",
        *,
        bypass: bool = False,
        colour: int = Colour.GREEN,
    ) -> EditableField:
        """Register an input field and draw its current content underlined."""

        padded = text[:length]
        self.write(row, column, padded, colour=colour, attr=ATTR_UNDERLINE)
        self.paint(row, range(column, column + length), attr=ATTR_UNDERLINE)
        descriptor = EditableField(
            start_row=row, start_col=column, length=length, bypass=bypass, text=padded
        )
        self._fields.append(descriptor)
        return descriptor

    def box(self, top: int, left: int, bottom: int, right: int) -> "ScreenBuilder":
        """Outline a nested window on the graphic plane (inclusive corners)."""

        for x in range(left, right + 1):
            if self._in_bounds(top, x):
                self._graphics[top][x] = int(Graphic.UPPER)
            if self._in_bounds(bottom, x):
                self._graphics[bottom][x] = int(Graphic.BOTTOM)
        for y in range(top + 1, bottom):
            if self._in_bounds(y, left):
                self._graphics[y][left] = int(Graphic.GUI_LEFT)
            if self._in_bounds(y, right):
                self._graphics[y][right] = int(Graphic.GUI_RIGHT)
        for (y, x), glyph in (
            ((top, left), Graphic.UPPER_LEFT),
            ((top, right), Graphic.UPPER_RIGHT),
            ((bottom, left), Graphic.LOWER_LEFT),
            ((bottom, right), Graphic.LOWER_RIGHT),
        ):
            if self._in_bounds(y, x):
                self._graphics[y][x] = int(glyph)
        return self

    def snapshot(self) -> GridSnapshot:
        """Freeze the canvas into an immutable :class:`GridSnapshot`."""

        ordered = sorted(self._fields, key=lambda item: (item.start_row, item.start_col))
        return GridSnapshot(
            text=tuple("".join(row) for row in self._text),
            colours=tuple(tuple(row) for row in self._colours),
            attrs=tuple(tuple(row) for row in self._attrs),
            graphics=tuple(tuple(row) for row in self._graphics),
            fields=tuple(ordered),
        )


def _decode_mask(
    mask: Any, codes: Mapping[str, int], *, width: int, default: int, label: str
) -> list[int]:
    if mask is None:
        return [default] * width
    if not isinstance(mask, str):
        raise SnapshotFormatError(f"{label} rows must be strings of plane codes")
    decoded: list[int] = []
    for char in mask.ljust(width)[:width]:
        if char == " ":
            decoded.append(default)
            continue
        try:
            decoded.append(int(codes[char]))
        except KeyError as exc:
            raise SnapshotFormatError(f"unknown {label} code {char!r}") from exc
    return decoded


def _coerce_rows(document: Mapping[str, Any], key: str) -> list[Any]:
    raw = document.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SnapshotFormatError(f"snapshot '{key}' must be a list")
    return raw


def snapshot_from_mapping(document: Mapping[str, Any]) -> GridSnapshot:
    """Build a snapshot from a JSON-style mapping.

    ``text`` holds the screen lines (``~`` stands for NUL, missing cells are
    NUL).  ``colour`` and ``attr`` hold per-row code strings (``g`` green,
    ``w`` white, ... and ``h`` high intensity, ``u`` underline, ``.`` normal);
    blanks fall back to green/normal.  ``fields`` lists input field tables with
    ``row``, ``col``, ``length`` and optional ``bypass``/``text``.
    """

    if not isinstance(document, Mapping):
        raise SnapshotFormatError("snapshot document must be a mapping")
    lines = _coerce_rows(document, "text")
    if not all(isinstance(line, str) for line in lines):
        raise SnapshotFormatError("snapshot text rows must be strings")
    width = int(document.get("columns") or max((len(line) for line in lines), default=0))
    colour_rows = _coerce_rows(document, "colour")
    attr_rows = _coerce_rows(document, "attr")

    builder = ScreenBuilder(rows=len(lines), columns=width)
    for row, line in enumerate(lines):
        colours = _decode_mask(
            colour_rows[row] if row < len(colour_rows) else None,
            _COLOUR_CODES,
            width=width,
            default=int(Colour.GREEN),
            label="colour",
        )
        attrs = _decode_mask(
            attr_rows[row] if row < len(attr_rows) else None,
            _ATTR_CODES,
            width=width,
            default=ATTR_NORMAL,
            label="attr",
        )
        for column, char in enumerate(line[:width]):
            builder.write(
                row,
                column,
                NUL if char == "~" else char,
                colour=colours[column],
                attr=attrs[column],
            )
        for column in range(len(line), width):
            builder.paint(row, range(column, column + 1), colour=colours[column], attr=attrs[column])

    for index, entry in enumerate(_coerce_rows(document, "fields"), start=1):
        if not isinstance(entry, Mapping):
            raise SnapshotFormatError(f"field entry #{index} must be a mapping")
        try:
            row = int(entry["row"])
            column = int(entry["col"])
            length = int(entry["length"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotFormatError(
                f"field entry #{index} requires integer row, col and length"
            ) from exc
        text = entry.get("text")
        if text is None:
            text = lines[row][column : column + length] if 0 <= row < len(lines) else ""
            text = text.replace("~", NUL)
        builder.add_field(
            row,
            column,
            length,
            str(text),
            bypass=bool(entry.get("bypass", False)),
        )

    for index, window in enumerate(_coerce_rows(document, "windows"), start=1):
        if not isinstance(window, Sequence) or len(window) != 4:
            raise SnapshotFormatError(
                f"window entry #{index} must be [top, left, bottom, right]"
            )
        top, left, bottom, right = (int(value) for value in window)
        builder.box(top, left, bottom, right)

    return builder.snapshot()


def load_snapshot(path: Path) -> GridSnapshot:
    """Read a JSON snapshot document from ``path``."""

    with path.open("r", encoding="utf-8") as stream:
        try:
            document = json.load(stream)
        except json.JSONDecodeError as exc:
            raise SnapshotFormatError(f"snapshot {path} is not valid JSON: {exc}") from exc
    return snapshot_from_mapping(document)


def iter_fields_by_row(fields: Iterable[EditableField]) -> dict[int, list[EditableField]]:
    """Group field descriptors by their start row, ordered by column."""

    grouped: dict[int, list[EditableField]] = {}
    for descriptor in sorted(fields, key=lambda item: (item.start_row, item.start_col)):
        grouped.setdefault(descriptor.start_row, []).append(descriptor)
    return grouped


__all__ = [
    "ATTR_HIGH_INTENSITY",
    "ATTR_NON_DISPLAY",
    "ATTR_NORMAL",
    "ATTR_REVERSE",
    "ATTR_UNDERLINE",
    "Colour",
    "EditableField",
    "Graphic",
    "GridSnapshot",
    "NUL",
    "Plane",
    "ScreenBuilder",
    "ScreenSnapshot",
    "SnapshotFormatError",
    "iter_fields_by_row",
    "load_snapshot",
    "screen_lines",
    "screen_text",
    "snapshot_from_mapping",
]
