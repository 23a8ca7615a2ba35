"""Scan a screen snapshot into titles, text, fields and an optional table."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from .color_filter import (
    clean_screen_text,
    filter_row,
    filter_row_by_attribute,
    filter_rows_by_color,
    is_blank,
    next_readable_position,
    trim,
)
from .config import ScanConfig
from .label_fields import FieldAssociator, SemanticField, arrange_row_entries, detect_dual_pane
from .readonly_fields import extract_read_only_fields
from .snapshot import (
    NUL,
    EditableField,
    Graphic,
    Plane,
    ScreenSnapshot,
    iter_fields_by_row,
    screen_lines,
)
from .table import ScreenTable, TableBuilder

logger = logging.getLogger(__name__)

# A header candidate may carry a single leading token (such as an option
# column marker) that ends before this column.
_HEADER_LEAD_LIMIT = 5


@dataclass(frozen=True)
class ScreenObject:
    """Semantic model of one screen (or nested window) at the time of the scan."""

    title_lines: tuple[str, ...] = ()
    text: str = ""
    display_fields: Dict[str, str] = field(default_factory=dict)
    input_fields: Dict[str, SemanticField] = field(default_factory=dict)
    table: ScreenTable | None = None
    message: str = ""
    row_range: range = range(0)
    column_range: range = range(0)
    input_field_count: int = 0
    dual_pane: bool = False

    @property
    def title(self) -> str:
        return "\n".join(self.title_lines)

    def title_line(self, line: int | str) -> str:
        return self.title_lines[int(line)]

    def field(self, label: str) -> EditableField | None:
        """Return the input field bound to ``label``."""

        semantic = self.input_fields.get(label)
        return semantic.source_field if semantic is not None else None

    def field_value(self, label: str) -> str | None:
        """Return the display value for ``label``, else the bound input field's value."""

        if label in self.display_fields:
            return self.display_fields[label]
        semantic = self.input_fields.get(label)
        return semantic.value if semantic is not None else None

    def field_exists(self, label: str) -> bool:
        return label in self.display_fields or label in self.input_fields

    def input_field_exists(self, label: str) -> bool:
        semantic = self.input_fields.get(label)
        return semantic is not None and not semantic.is_read_only

    @property
    def content_fields(self) -> list[str]:
        return list(self.display_fields)

    @property
    def input_labels(self) -> list[str]:
        return list(self.input_fields)


def _unique_key(mapping: Dict[str, str], label: str) -> str:
    candidate = label
    duplicate = 0
    while candidate in mapping:
        duplicate += 1
        candidate = f"{label}@{duplicate}"
    return candidate


class _RegionScanner:
    """Row-by-row state machine over one scan region."""

    def __init__(
        self,
        snapshot: ScreenSnapshot,
        config: ScanConfig,
        row_range: range,
        column_range: range,
    ) -> None:
        self.snapshot = snapshot
        self.config = config
        self.row_range = row_range
        self.column_range = column_range

        self.content_lines = {
            row: filter_row(snapshot, row, column_range, config.content_colors)
            for row in row_range
        }
        self.fields_by_row = iter_fields_by_row(
            descriptor
            for descriptor in snapshot.editable_fields()
            if descriptor.start_row in row_range and descriptor.start_col in column_range
        )
        self.dual_pane = detect_dual_pane(
            self.content_lines.values(), config.dual_pane_threshold
        )
        self.panes = 2 if self.dual_pane else 1

        self.associator = FieldAssociator()
        self.display_fields: Dict[str, str] = {}
        self.builder: TableBuilder | None = None
        self.table: ScreenTable | None = None
        self.in_table = False
        self.skip_rows: set[int] = set()
        self._table_start = 0
        self._table_rows: list[int] = []

    def _in_content_range(self, row: int) -> bool:
        # Leading title rows and the trailing message rows are not content.
        return (
            self.row_range.start + self.config.title_lines
            <= row
            <= self.row_range.stop - 3
        )

    def _might_be_table_header(self, line: str, row: int) -> bool:
        if is_blank(line) and self._in_content_range(row):
            return True
        first = next_readable_position(line, 0)
        if first >= len(line):
            return True
        first_nul = line.find(NUL, first + 1)
        return first_nul != -1 and first_nul < _HEADER_LEAD_LIMIT and not line[first_nul:].strip(NUL)

    def _header_line(self, row: int) -> str:
        return filter_row_by_attribute(
            self.snapshot, row, self.column_range, self.config.table_header_attrs
        )

    def _open_table(self, row: int, header_line: str) -> TableBuilder:
        header_lines = [header_line]
        continuation = row + 1
        while continuation < self.row_range.stop:
            wrapped = self._header_line(continuation)
            if is_blank(wrapped):
                break
            header_lines.append(wrapped)
            self.skip_rows.add(continuation)
            continuation += 1
        self._table_start = continuation
        self._table_rows = []
        return TableBuilder(
            header_lines, len(self.column_range), column_offset=self.column_range.start
        )

    def _close_table(self, stop: int) -> None:
        if not self.in_table or self.builder is None:
            return
        if self._table_rows:
            rows = range(self._table_rows[0], self._table_rows[-1] + 1)
        else:
            rows = range(self._table_start, max(self._table_start, stop))
        self.table = self.builder.finish(
            rows,
            self.column_range,
            self.config.content_colors,
            self.config.same_content_tolerance,
            page_rows=range(self._table_start, max(self._table_start, self.row_range.stop - 2)),
        )
        self.in_table = False

    def _handle_header(self, row: int, header_line: str) -> None:
        if self.builder is None:
            candidate = self._open_table(row, header_line)
            if candidate.is_table():
                self.builder = candidate
                self.in_table = True
            return

        if self.config.favor_first_table:
            logger.warning(
                "possibly multiple tables found at row %d; keeping the first table", row
            )
            self._close_table(row)
            return

        logger.warning("possibly multiple tables found at row %d; switching to the new table", row)
        self._close_table(row)
        candidate = self._open_table(row, header_line)
        if candidate.is_table():
            self.builder = candidate
            self.table = None
            self.in_table = True

    def run(self) -> None:
        end_sentinels = self.config.table_end_sentinels
        for row in self.row_range:
            if row in self.skip_rows:
                continue

            line = self.content_lines[row]
            blank = is_blank(line)

            if self._might_be_table_header(line, row):
                header_line = self._header_line(row)
                header_content = trim(header_line)
                if header_content in end_sentinels:
                    self._close_table(row)
                    continue
                if header_content:
                    self._handle_header(row, header_line)
                    continue
                self._close_table(row)

            if self.in_table and self.builder is not None:
                if not blank and self._in_content_range(row):
                    self.builder.add_row(line, self.fields_by_row.get(row, ()))
                    self._table_rows.append(row)
                    continue
                self._close_table(row)

            if blank:
                continue
            self._scan_fields(row, line)

        self._close_table(self.row_range.stop)

    def _scan_fields(self, row: int, line: str) -> None:
        pairs = extract_read_only_fields(line, self.panes)

        fields = self.fields_by_row.get(row)
        if fields:
            arranged = arrange_row_entries(line, fields, self.panes, self.column_range.start)
            self.associator.associate_row(
                row,
                arranged,
                next_line=self.content_lines.get(row + 1, ""),
                next_fields=self.fields_by_row.get(row + 1, ()),
                column_offset=self.column_range.start,
            )

        bound = self.associator.labels_for_row(row)
        for label, value in pairs:
            if label in bound:
                continue
            self.display_fields[_unique_key(self.display_fields, label)] = clean_screen_text(value)

    def input_field_count(self) -> int:
        return sum(
            1
            for fields in self.fields_by_row.values()
            for descriptor in fields
            if not descriptor.bypass
        )


def _visible_text(
    snapshot: ScreenSnapshot, config: ScanConfig, row_range: range, column_range: range
) -> str:
    lines = []
    for row in row_range:
        line = filter_row(snapshot, row, column_range, config.visible_colors)
        lines.append(line.replace(NUL, " ").removeprefix(" "))
    return "\n".join(lines)


def _scan_region(
    snapshot: ScreenSnapshot,
    config: ScanConfig,
    row_range: range,
    column_range: range,
    *,
    message: str = "",
) -> ScreenObject:
    titles: tuple[str, ...] = ()
    if config.title_lines > 0:
        title_rows = range(
            row_range.start, min(row_range.start + config.title_lines, row_range.stop)
        )
        titles = tuple(
            filter_rows_by_color(snapshot, title_rows, column_range, config.title_colors)
        )

    scanner = _RegionScanner(snapshot, config, row_range, column_range)
    scanner.run()
    return ScreenObject(
        title_lines=titles,
        text=_visible_text(snapshot, config, row_range, column_range),
        display_fields=scanner.display_fields,
        input_fields=dict(scanner.associator.fields),
        table=scanner.table,
        message=message,
        row_range=row_range,
        column_range=column_range,
        input_field_count=scanner.input_field_count(),
        dual_pane=scanner.dual_pane,
    )


def scan(snapshot: ScreenSnapshot, config: ScanConfig | None = None) -> ScreenObject:
    """Scan the whole screen; ``message`` holds the bottom line."""

    config = config or ScanConfig()
    lines = screen_lines(snapshot)
    message = clean_screen_text(lines[-1]) if lines else ""
    return _scan_region(
        snapshot,
        config,
        range(0, snapshot.rows),
        range(0, snapshot.columns),
        message=message,
    )


def find_window(snapshot: ScreenSnapshot) -> tuple[int, int, int, int] | None:
    """Locate a nested window box as ``(top, left, bottom, right)`` border positions."""

    top = left = right = bottom = -1
    full = range(0, snapshot.columns)
    for row in range(snapshot.rows):
        glyphs = list(snapshot.row_slice(row, full, Plane.GRAPHIC))
        if not glyphs:
            continue

        if top < 0:
            if Graphic.UPPER_LEFT in glyphs:
                if Graphic.UPPER_RIGHT in glyphs:
                    top = row
                    left = glyphs.index(Graphic.UPPER_LEFT)
                    right = len(glyphs) - 1 - glyphs[::-1].index(Graphic.UPPER_RIGHT)
                else:
                    logger.error("found unmatched nested window boundary on row %d", row + 1)
            continue

        if Graphic.LOWER_LEFT in glyphs:
            if Graphic.LOWER_RIGHT not in glyphs:
                logger.error("found unmatched nested window boundary on row %d", row + 1)
                continue
            lower_left = glyphs.index(Graphic.LOWER_LEFT)
            lower_right = len(glyphs) - 1 - glyphs[::-1].index(Graphic.LOWER_RIGHT)
            if lower_left != left or lower_right != right:
                logger.error(
                    "nested window bottom border on row %d does not line up with its top",
                    row + 1,
                )
            bottom = row
            break

        if Graphic.GUI_LEFT not in glyphs:
            logger.error("expected left window border not found on row %d", row + 1)
            continue
        if Graphic.GUI_RIGHT not in glyphs:
            logger.error("expected right window border not found on row %d", row + 1)
            continue
        side_left = glyphs.index(Graphic.GUI_LEFT)
        side_right = len(glyphs) - 1 - glyphs[::-1].index(Graphic.GUI_RIGHT)
        if side_left != left or side_right != right:
            logger.error("nested window side borders on row %d are misaligned", row + 1)

    if top < 0 or bottom < 0:
        logger.error("no nested window found on the current screen")
        return None
    return top, left, bottom, right


def scan_nested(
    snapshot: ScreenSnapshot, config: ScanConfig | None = None
) -> ScreenObject | None:
    """Scan only the inside of the nested window drawn on the screen, if any."""

    window = find_window(snapshot)
    if window is None:
        return None
    top, left, bottom, right = window
    return _scan_region(
        snapshot,
        config or ScanConfig(),
        range(top + 1, bottom),
        range(left + 1, right),
    )


__all__ = [
    "ScreenObject",
    "find_window",
    "scan",
    "scan_nested",
]
