from __future__ import annotations

import json

from termscan.report import format_report, format_table, screen_object_as_dict
from termscan.screen_object import ScreenObject, scan
from termscan.snapshot import ATTR_HIGH_INTENSITY, Colour, ScreenBuilder


def _screen() -> ScreenObject:
    builder = ScreenBuilder()
    builder.write(0, 30, "Work with Accounts", colour=Colour.WHITE)
    builder.write(3, 0, "ID   Name      Status", colour=Colour.WHITE, attr=ATTR_HIGH_INTENSITY)
    builder.write(4, 0, "1    Alice     Active")
    builder.write(5, 0, "2    Bob       Inactive")
    builder.write(10, 2, "Branch: Downtown")
    builder.write(12, 2, "Name  . . . .")
    builder.add_field(12, 16, 12, "John")
    builder.write(23, 1, "Press Enter to continue.")
    return scan(builder.snapshot())


def test_format_table_draws_layout_and_grid() -> None:
    table = _screen().table
    assert table is not None

    lines = format_table(table)

    assert lines[0] == "  rows 5-6, 3 columns, 2 data rows"
    assert lines[1] == "  column 1: [0, 5) 'ID'"
    assert lines[3] == "  column 3: [15, 80) 'Status'"
    assert lines[4] == "  +----+-------+----------+"
    assert lines[5] == "  | ID | Name  | Status   |"
    assert lines[7] == "  | 1  | Alice | Active   |"
    assert lines[-1] == lines[4]


def test_format_report_sections() -> None:
    report = format_report(_screen())
    lines = report.splitlines()

    assert lines[0] == "SCREEN:"
    assert "  rows      : 1-24" in lines
    assert "  dual pane : no" in lines
    assert "  input fields on screen: 1" in lines
    assert lines[lines.index("TITLE:") + 1] == "  Work with Accounts"
    assert "  Branch = 'Downtown'" in lines
    assert "  Name = 'John' (row 13, column 17, length 12)" in lines
    assert lines[-2:] == ["MESSAGE:", "  Press Enter to continue."]


def test_format_report_without_table_or_message() -> None:
    screen = ScreenObject()

    report = format_report(screen)

    assert "TABLE:\n  (none)" in report
    assert "MESSAGE:" not in report
    assert "  rows      : -" in report


def test_screen_object_as_dict_is_json_ready() -> None:
    document = screen_object_as_dict(_screen())

    assert json.loads(json.dumps(document)) == document
    assert document["title"] == ["Work with Accounts", ""]
    assert document["display_fields"] == {"Branch": "Downtown"}
    assert document["input_fields"]["Name"] == {
        "value": "John",
        "read_only": False,
        "row": 12,
        "col": 16,
        "length": 12,
    }
    assert document["table"]["headers"] == ["ID", "Name", "Status"]
    assert document["table"]["rows"] == [
        ["1", "Alice", "Active"],
        ["2", "Bob", "Inactive"],
    ]
    assert document["table"]["row_range"] == [4, 6]
    assert document["message"] == "Press Enter to continue."
