"""Plain-text and JSON-ready renderings of a scanned screen."""
from __future__ import annotations

from typing import Any, Dict

from .label_fields import SemanticField
from .screen_object import ScreenObject
from .table import ScreenTable


def _range_text(span: range) -> str:
    if not span:
        return "-"
    return f"{span.start + 1}-{span.stop}"


def _field_line(label: str, semantic: SemanticField) -> str:
    source = semantic.source_field
    if source is None:
        return f"  {label} = {semantic.value!r}"
    return (
        f"  {label} = {semantic.value!r} "
        f"(row {source.start_row + 1}, column {source.start_col + 1}, length {source.length})"
    )


def format_table(table: ScreenTable) -> list[str]:
    """Return the table as a ruled grid preceded by its column layout."""

    lines = [
        f"  rows {_range_text(table.row_range)}, "
        f"{table.column_count} columns, {table.row_count()} data rows"
    ]
    lines.extend(
        f"  column {index + 1}: [{spec.start}, {spec.end}) {header!r}"
        for index, (spec, header) in enumerate(zip(table.column_specs, table.headers))
    )

    widths = [len(header) for header in table.headers]
    for row in table.rows:
        for index, cell in enumerate(row.cells):
            widths[index] = max(widths[index], len(cell))

    def render(cells: tuple[str, ...]) -> str:
        return "| " + " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)) + " |"

    rule = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
    lines.append("  " + rule)
    lines.append("  " + render(table.headers))
    lines.append("  " + rule)
    lines.extend("  " + render(row.cells) for row in table.rows)
    lines.append("  " + rule)
    return lines


def format_report(screen: ScreenObject) -> str:
    """Render ``screen`` as a sectioned inspection report."""

    lines = [
        "SCREEN:",
        f"  rows      : {_range_text(screen.row_range)}",
        f"  columns   : {_range_text(screen.column_range)}",
        f"  dual pane : {'yes' if screen.dual_pane else 'no'}",
        f"  input fields on screen: {screen.input_field_count}",
        "",
        "TITLE:",
    ]
    lines.extend(f"  {line}" for line in screen.title_lines if line)

    lines.append("")
    lines.append("DISPLAY FIELDS:")
    lines.extend(f"  {label} = {value!r}" for label, value in screen.display_fields.items())

    lines.append("")
    lines.append("INPUT FIELDS:")
    lines.extend(_field_line(label, semantic) for label, semantic in screen.input_fields.items())

    lines.append("")
    lines.append("TABLE:")
    if screen.table is None:
        lines.append("  (none)")
    else:
        lines.extend(format_table(screen.table))

    if screen.message:
        lines.append("")
        lines.append("MESSAGE:")
        lines.append(f"  {screen.message}")
    return "\n".join(lines)


def screen_object_as_dict(screen: ScreenObject) -> Dict[str, Any]:
    """Return a JSON-serialisable view of ``screen``."""

    input_fields = {}
    for label, semantic in screen.input_fields.items():
        source = semantic.source_field
        input_fields[label] = {
            "value": semantic.value,
            "read_only": semantic.is_read_only,
            "row": source.start_row if source is not None else None,
            "col": source.start_col if source is not None else None,
            "length": source.length if source is not None else None,
        }

    table = None
    if screen.table is not None:
        table = {
            "headers": list(screen.table.headers),
            "columns": [[spec.start, spec.end] for spec in screen.table.column_specs],
            "rows": [list(row.cells) for row in screen.table.rows],
            "row_range": [screen.table.row_range.start, screen.table.row_range.stop],
        }

    return {
        "title": list(screen.title_lines),
        "text": screen.text,
        "message": screen.message,
        "dual_pane": screen.dual_pane,
        "input_field_count": screen.input_field_count,
        "display_fields": dict(screen.display_fields),
        "input_fields": input_fields,
        "table": table,
    }


__all__ = ["format_report", "format_table", "screen_object_as_dict"]
