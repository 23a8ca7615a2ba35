"""Column layout, row parsing, queries and CSV harvesting for screen tables.

A table starts at one or more header lines drawn with the header attribute.
Column boundaries come from the header text; data rows are then sliced (when
the headers are separated by runs of spaces) or reconciled run by run against
the boundaries (dense headers separated only by attribute cells).
"""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Callable, Collection, Iterable, Mapping, Sequence, Union

from .color_filter import clean_screen_text, filter_row, is_blank, next_readable_position
from .matching import poly_match
from .session import KEY_PAGE_DOWN, KEY_PAGE_UP, KEY_RESET, SessionControl, last_line
from .snapshot import NUL, EditableField, ScreenSnapshot, iter_fields_by_row, screen_text

logger = logging.getLogger(__name__)

ANY_COLUMN = "*"
DEFAULT_SAME_CONTENT_TOLERANCE = 10
MIN_TABLE_COLUMNS = 2

_SPACE_RUN = re.compile(r" {2,}")

Expectation = Union[str, Callable[[str], bool]]


@dataclass(frozen=True, slots=True)
class TableColumnSpec:
    """Half-open ``[start, end)`` column range relative to the scanned area."""

    start: int
    end: int

    def slice(self, line: str) -> str:
        return line[self.start : self.end]


@dataclass(frozen=True)
class TableRow:
    """Parsed data row; ``fields`` runs parallel to ``cells``."""

    cells: tuple[str, ...]
    fields: tuple[EditableField | None, ...] = ()
    row_fields: tuple[EditableField, ...] = ()


def _has_inner_space_run(line: str) -> bool:
    return "  " in line.strip(NUL + " ")


def _blank_space_runs(line: str) -> str:
    return _SPACE_RUN.sub(lambda matched: NUL * len(matched.group(0)), line)


def derive_column_specs(header_lines: Sequence[str], width: int) -> list[TableColumnSpec]:
    """Turn runs of columns holding header text into column specs.

    A column stretches from the start of its header text to the start of the
    next header; the last one runs to ``width``.
    """

    starts: list[int] = []
    in_run = False
    for column in range(width):
        occupied = any(column < len(line) and line[column] != NUL for line in header_lines)
        if occupied and not in_run:
            starts.append(column)
        in_run = occupied
    return [
        TableColumnSpec(start, starts[index + 1] if index + 1 < len(starts) else width)
        for index, start in enumerate(starts)
    ]


class TableBuilder:
    """In-progress table whose column specs may still be corrected by data rows."""

    def __init__(
        self,
        header_lines: Sequence[str],
        width: int,
        *,
        column_offset: int = 0,
    ) -> None:
        lines = [line.ljust(width, NUL) for line in header_lines]
        self.favor_spaces = bool(lines) and all(_has_inner_space_run(line) for line in lines)
        if self.favor_spaces:
            lines = [_blank_space_runs(line) for line in lines]
        self.header_lines = lines
        self.width = width
        self.column_offset = column_offset
        self.specs: list[TableColumnSpec] = derive_column_specs(lines, width)
        self.headers: list[str] = []
        self.rows: list[TableRow] = []
        self._recompute_headers()

    @classmethod
    def from_table(cls, table: "ScreenTable") -> "TableBuilder":
        """Return a builder sharing ``table``'s layout but holding no rows."""

        builder = cls.__new__(cls)
        builder.favor_spaces = table.favor_spaces
        builder.header_lines = list(table.header_lines)
        builder.width = len(table.column_range)
        builder.column_offset = table.column_range.start
        builder.specs = list(table.column_specs)
        builder.headers = list(table.headers)
        builder.rows = []
        return builder

    @property
    def column_count(self) -> int:
        return len(self.specs)

    def is_table(self) -> bool:
        return len(self.specs) >= MIN_TABLE_COLUMNS

    def _recompute_headers(self) -> None:
        headers = []
        for spec in self.specs:
            pieces = (clean_screen_text(spec.slice(line)) for line in self.header_lines)
            headers.append(" ".join(piece for piece in pieces if piece).strip())
        self.headers = headers

    def add_row(self, line: str, fields: Iterable[EditableField] | None = None) -> TableRow:
        """Parse ``line`` into cells aligned with the (possibly corrected) specs."""

        cells = self._parse_spaced(line) if self.favor_spaces else self._parse_dense(line)

        column_count = len(self.specs)
        if len(cells) > column_count:
            extra = "".join(cells[column_count:]).strip()
            cells = cells[:column_count]
            if extra:
                cells[-1] = f"{cells[-1]} {extra}".strip()
        cells.extend("" for _ in range(column_count - len(cells)))

        row_fields = tuple(fields or ())
        row = TableRow(
            cells=tuple(cells),
            fields=tuple(self._field_for(spec, row_fields) for spec in self.specs),
            row_fields=row_fields,
        )
        self.rows.append(row)
        return row

    def _field_for(
        self, spec: TableColumnSpec, fields: Sequence[EditableField]
    ) -> EditableField | None:
        for descriptor in fields:
            start = descriptor.start_col - self.column_offset
            end = descriptor.end_col - self.column_offset
            if start >= spec.start and end <= spec.end:
                return descriptor
        return None

    def _parse_spaced(self, line: str) -> list[str]:
        cells: list[str] = []
        corrected = False
        last_index = len(self.specs) - 1
        for index in range(len(self.specs)):
            spec = self.specs[index]
            data = spec.slice(line)
            if not data or data[-1] in (" ", NUL) or index == last_index:
                cells.append(clean_screen_text(data))
                continue

            # Text runs into the next column: move the boundary back to the
            # cell's last blank so the straddling token belongs to the next cell.
            last_blank = max(data.rfind(" "), data.rfind(NUL))
            if last_blank == -1:
                cells.append(clean_screen_text(data))
                continue

            cells.append(clean_screen_text(data[:last_blank]))
            boundary = spec.start + last_blank + 1
            following = self.specs[index + 1]
            self.specs[index] = TableColumnSpec(spec.start, boundary)
            self.specs[index + 1] = TableColumnSpec(boundary, following.end)
            corrected = True

        if corrected:
            logger.debug("adjusting table headers after column boundary correction")
            self._recompute_headers()
        return cells

    def _insert_leading_column(self, spec: TableColumnSpec) -> None:
        self.specs.insert(0, spec)
        self.headers.insert(0, "")
        self.rows = [
            TableRow(
                cells=("",) + row.cells,
                fields=(None,) + row.fields,
                row_fields=row.row_fields,
            )
            for row in self.rows
        ]

    def _parse_dense(self, line: str) -> list[str]:
        cells: list[str] = []
        column = 0
        position = 0
        while position < len(line):
            start = next_readable_position(line, position)
            if start >= len(line):
                break
            end = line.find(NUL, start + 1)
            if end == -1:
                end = len(line)
            cell = clean_screen_text(line[start:end])
            position = end + 1

            if column >= len(self.specs):
                # Dangling text past the last column; folded in by ``add_row``.
                cells.append(cell)
                column += 1
                continue

            spec = self.specs[column]
            following = self.specs[column + 1] if column + 1 < len(self.specs) else None

            if column == 0 and end <= spec.start:
                # Unlabelled leading column found left of the first header.
                self._insert_leading_column(TableColumnSpec(start, spec.start))
                cells.append(cell)
                column += 1
                continue

            if start >= spec.end - 1:
                target = column
                while target + 1 < len(self.specs) and end > self.specs[target + 1].start:
                    cells.append("")
                    target += 1
                cells.append(cell)
                column = target + 1
                continue

            if column > 0 and end <= spec.start:
                cells[column - 1] = f"{cells[column - 1]} {cell}".strip()
                continue

            if following is not None and end > following.start and start > spec.start:
                self.specs[column] = TableColumnSpec(spec.start, start)
                self.specs[column + 1] = TableColumnSpec(start, max(end, following.end))
                cells.append(clean_screen_text(line[spec.start : start]))
                cells.append(cell)
                column += 2
                continue

            cells.append(cell)
            column += 1
        return cells

    def finish(
        self,
        row_range: range,
        column_range: range,
        content_colors: Collection[int],
        same_content_tolerance: int = DEFAULT_SAME_CONTENT_TOLERANCE,
        page_rows: range | None = None,
    ) -> "ScreenTable":
        """Freeze the builder into an immutable :class:`ScreenTable`.

        ``page_rows`` bounds the rows re-read when another page of the table is
        harvested; it defaults to ``row_range``.
        """

        return ScreenTable(
            headers=tuple(self.headers),
            column_specs=tuple(self.specs),
            rows=tuple(self.rows),
            header_lines=tuple(self.header_lines),
            favor_spaces=self.favor_spaces,
            row_range=row_range,
            column_range=column_range,
            content_colors=tuple(int(colour) for colour in content_colors),
            same_content_tolerance=same_content_tolerance,
            page_rows=row_range if page_rows is None else page_rows,
        )


class _SeparatedWriter:
    """Write csv-quoted rows whose field separator may be several characters long.

    Each cell is quoted on its own with the first separator character as the
    delimiter, so any cell holding the separator gets quoted.
    """

    def __init__(self, stream: io.StringIO, field_separator: str, row_separator: str) -> None:
        if not field_separator:
            raise ValueError("field_separator must not be empty")
        self.stream = stream
        self.field_separator = field_separator
        self.row_separator = row_separator
        self._terminator = row_separator or "\n"
        self._scratch = io.StringIO()
        self._cell_writer = csv.writer(
            self._scratch,
            delimiter=field_separator[0],
            lineterminator=self._terminator,
            quoting=csv.QUOTE_MINIMAL,
        )

    def _quote(self, cell: str) -> str:
        if not cell:
            return ""
        self._scratch.seek(0)
        self._scratch.truncate()
        self._cell_writer.writerow([cell])
        return self._scratch.getvalue().removesuffix(self._terminator)

    def writerow(self, cells: Iterable[str]) -> None:
        quoted = self.field_separator.join(self._quote(cell) for cell in cells)
        self.stream.write(quoted + self.row_separator)


@dataclass(frozen=True)
class ScreenTable:
    """Finalised table region of a screen."""

    headers: tuple[str, ...]
    column_specs: tuple[TableColumnSpec, ...]
    rows: tuple[TableRow, ...]
    header_lines: tuple[str, ...] = ()
    favor_spaces: bool = False
    row_range: range = range(0)
    column_range: range = range(0)
    content_colors: tuple[int, ...] = ()
    same_content_tolerance: int = DEFAULT_SAME_CONTENT_TOLERANCE
    page_rows: range = range(0)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def row_count(self, field: str | None = None, expected: Expectation | None = None) -> int:
        """Count rows, or rows whose ``field`` cell (``"*"`` for any) matches ``expected``."""

        if field is None or expected is None:
            return len(self.rows)
        if field == ANY_COLUMN:
            check = _as_predicate(expected)
            return sum(1 for row in self.rows if any(check(cell) for cell in row.cells))
        check = _as_predicate(expected)
        return sum(1 for value in self.column_data(field) if check(value))

    def _column_index(self, name: str) -> int:
        try:
            return self.headers.index(name)
        except ValueError:
            return -1

    def _row_as_dict(self, row: TableRow) -> dict[str, str]:
        return dict(zip(self.headers, row.cells))

    def as_dicts(self) -> list[dict[str, str]]:
        return [self._row_as_dict(row) for row in self.rows]

    def _row_matches(self, row: TableRow, criteria: Mapping[str, str]) -> bool:
        for column, expected in criteria.items():
            if column == ANY_COLUMN:
                if not any(poly_match(cell, expected) for cell in row.cells):
                    return False
                continue
            index = self._column_index(column)
            if index == -1 or index >= len(row.cells):
                return False
            if not poly_match(row.cells[index], expected):
                return False
        return True

    def filter(self, criteria: Mapping[str, str] | None = None) -> list[dict[str, str]]:
        """Return the rows (as header keyed dicts) matching every criterion."""

        if not criteria:
            return self.as_dicts()
        return [self._row_as_dict(row) for row in self.rows if self._row_matches(row, criteria)]

    def first(self, criteria: Mapping[str, str] | None = None) -> dict[str, str]:
        for row in self.rows:
            if not criteria or self._row_matches(row, criteria):
                return self._row_as_dict(row)
        return {}

    def column_data(self, field: str) -> list[str]:
        """Return ``field``'s cells, falling back to the input field text for blank cells."""

        index = self._column_index(field)
        if index == -1:
            return []
        values = []
        for row in self.rows:
            value = row.cells[index] if index < len(row.cells) else ""
            if is_blank(value):
                descriptor = row.fields[index] if index < len(row.fields) else None
                value = descriptor.value if descriptor is not None else value
            values.append(value)
        return values

    def match(self, field: str, expected: str) -> bool:
        return self.find_row(field, expected) != -1

    def find_row(self, field: str, expected: Expectation) -> int:
        """Return the index of the first row whose ``field`` cell matches, else ``-1``."""

        check = _as_predicate(expected)
        if field == ANY_COLUMN:
            for index, row in enumerate(self.rows):
                if any(check(cell) for cell in row.cells):
                    return index
            return -1
        for index, value in enumerate(self.column_data(field)):
            if check(value):
                return index
        return -1

    def field(self, row: int, column: str | int) -> EditableField | None:
        """Return the input field under ``column`` (header text or index) of ``row``."""

        index = column if isinstance(column, int) else self._column_index(column)
        if not 0 <= row < len(self.rows) or index < 0:
            return None
        fields = self.rows[row].fields
        return fields[index] if index < len(fields) else None

    def row_fields(self, row: int) -> tuple[EditableField, ...]:
        if not 0 <= row < len(self.rows):
            return ()
        return self.rows[row].row_fields

    def option(self, session: SessionControl, row: int, *options: str) -> None:
        """Key ``options`` into the column-aligned input fields of ``row``, left to right.

        Options beyond the number of fields on the row are ignored.
        """

        if not 0 <= row < len(self.rows):
            logger.warning("no table row %d to key options into", row)
            return
        fields = [descriptor for descriptor in self.rows[row].fields if descriptor is not None]
        for descriptor, keys in zip(fields, options):
            session.goto_field(descriptor)
            session.send_keys(keys)

    def _csv_cells(self, row: TableRow) -> list[str]:
        cells = []
        for index, cell in enumerate(row.cells):
            if not cell and index < len(row.fields) and row.fields[index] is not None:
                cell = row.fields[index].value
            cells.append(cell)
        return cells

    def to_csv(
        self,
        session: SessionControl | None = None,
        *,
        field_separator: str = ",",
        row_separator: str = "\n",
        max_pages: int = 1,
        same_content_tolerance: int | None = None,
    ) -> str:
        """Serialise the table as CSV, optionally paging through ``session``.

        A positive ``max_pages`` pages forward, a negative one backward.  The
        session is returned to its starting page afterwards.  Without a page
        indicator, harvesting stops once ``same_content_tolerance`` page turns
        in a row show unchanged rows (the table's own setting by default).
        """

        buffer = io.StringIO()
        writer = _SeparatedWriter(buffer, field_separator, row_separator)
        tolerance = (
            self.same_content_tolerance if same_content_tolerance is None else same_content_tolerance
        )

        writer.writerow(self.headers)

        if session is None:
            for row in self.rows:
                writer.writerow(self._csv_cells(row))
            return buffer.getvalue()

        session.send_keys(KEY_RESET)
        session.refresh()

        builder = TableBuilder.from_table(self)
        forward = max_pages > 0
        page_limit = abs(max_pages)
        rows: Sequence[TableRow] = self.rows
        page_count = 0
        same_content = 0

        while page_count < page_limit:
            for row in rows:
                writer.writerow(self._csv_cells(row))

            if page_count == page_limit - 1:
                break

            text = screen_text(session.snapshot())
            bottom = session.bottom_text
            if bottom and bottom in text and re.search(r"\S" + re.escape(bottom), text) is None:
                if forward:
                    logger.info("ending table->csv: bottom of the table reached ('%s' found)", bottom)
                    break

            if session.more_text and session.more_text in text:
                if not self._change_page(session, page_up=not forward):
                    logger.info(
                        "ending table->csv: found '%s' but unable to turn the page",
                        session.more_text,
                    )
                    break
                rows = self._rescan(builder, session.snapshot())
                page_count += 1
                continue

            previous = [row.cells for row in rows]
            if not self._change_page(session, page_up=not forward):
                logger.info("ending table->csv: unable to turn the page")
                break
            rows = self._rescan(builder, session.snapshot())
            if previous == [row.cells for row in rows]:
                same_content += 1
                logger.debug("same table content found; count %d", same_content)
                if same_content >= tolerance:
                    logger.info("ending table->csv: same content found %d times", tolerance)
                    break
            else:
                same_content = 0
            page_count += 1

        for _ in range(page_count):
            if not self._change_page(session, page_up=forward):
                logger.warning("unable to scroll the table back to its starting page")
                break

        return buffer.getvalue()

    def _rescan(self, builder: TableBuilder, snapshot: ScreenSnapshot) -> tuple[TableRow, ...]:
        builder.rows = []
        fields_by_row = iter_fields_by_row(snapshot.editable_fields())
        for row in self.page_rows or self.row_range:
            line = filter_row(snapshot, row, self.column_range, self.content_colors)
            if is_blank(line):
                break
            builder.add_row(line, fields_by_row.get(row, ()))
        return tuple(builder.rows)

    @staticmethod
    def _change_page(session: SessionControl, *, page_up: bool) -> bool:
        session.send_keys(KEY_PAGE_UP if page_up else KEY_PAGE_DOWN)
        session.refresh()
        before = last_line(session.snapshot())

        if not session.wait_until_stable():
            return False

        if session.is_keyboard_locked():
            session.send_keys(KEY_RESET)
            session.refresh()
            return False

        after = last_line(session.snapshot())
        # Landing on the last page still counts as a turn; the harvest loop
        # stops on the bottom indicator after collecting that page.
        if session.bottom_text and session.bottom_text in after and not page_up:
            return True
        if session.more_text and session.more_text in after:
            return True
        if before != after:
            logger.info("message found in the terminal session: %s", after.strip())
            return False
        return True


def _as_predicate(expected: Expectation) -> Callable[[str], bool]:
    if callable(expected):
        return expected
    return lambda value: poly_match(value, expected)


__all__ = [
    "ANY_COLUMN",
    "DEFAULT_SAME_CONTENT_TOLERANCE",
    "MIN_TABLE_COLUMNS",
    "ScreenTable",
    "TableBuilder",
    "TableColumnSpec",
    "TableRow",
    "derive_column_specs",
]
