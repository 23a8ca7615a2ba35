from __future__ import annotations

import pytest

from termscan.screen_object import scan
from termscan.snapshot import ATTR_HIGH_INTENSITY, NUL, Colour, EditableField, ScreenBuilder
from termscan.table import TableBuilder, TableColumnSpec, derive_column_specs

GREEN = (int(Colour.GREEN),)


def _line(width: int, *segments: tuple[int, str]) -> str:
    cells = [NUL] * width
    for column, text in segments:
        for offset, char in enumerate(text):
            cells[column + offset] = char
    return "".join(cells)


def _people_table():
    builder = TableBuilder(["ID   Name      Status"], 30)
    builder.add_row("1    Alice     Active")
    builder.add_row("2    Bob       Inactive")
    builder.add_row("3    Carol     Active")
    return builder.finish(range(4, 7), range(0, 30), GREEN)


def test_spaced_header_derives_columns() -> None:
    builder = TableBuilder(["ID   Name      Status"], 30)

    assert builder.favor_spaces
    assert builder.specs == [
        TableColumnSpec(0, 5),
        TableColumnSpec(5, 15),
        TableColumnSpec(15, 30),
    ]
    assert builder.headers == ["ID", "Name", "Status"]


def test_table_csv_has_header_and_rows() -> None:
    builder = TableBuilder(["ID   Name      Status"], 30)
    builder.add_row("1    Alice     Active")
    builder.add_row("2    Bob       Inactive")
    table = builder.finish(range(4, 6), range(0, 30), GREEN)

    csv_text = table.to_csv()

    assert csv_text == "ID,Name,Status\n1,Alice,Active\n2,Bob,Inactive\n"
    assert len(csv_text.splitlines()) == 3


def test_scanned_table_round_trips_to_csv() -> None:
    builder = ScreenBuilder()
    builder.write(3, 0, "ID   Name      Status", colour=Colour.WHITE, attr=ATTR_HIGH_INTENSITY)
    builder.write(4, 0, "1    Alice     Active")
    builder.write(5, 0, "2    Bob       Inactive")

    screen = scan(builder.snapshot())

    assert screen.table is not None
    assert screen.table.headers == ("ID", "Name", "Status")
    assert screen.table.row_range == range(4, 6)
    assert screen.table.to_csv(max_pages=1) == "ID,Name,Status\n1,Alice,Active\n2,Bob,Inactive\n"


def test_rendered_rows_parse_back_to_their_cells() -> None:
    header = "Code  Description     Amount   Due"
    width = 50
    builder = TableBuilder([header], width)
    rows = [
        ("A1", "Widget", "10.00", "Mon"),
        ("B22", "Gear box", "7.5", "Tue"),
        ("C", "Bolt", "0", "Fri"),
    ]

    for cells in rows:
        line = _line(width, *((spec.start, cell) for spec, cell in zip(builder.specs, cells)))
        builder.add_row(line)

    assert [row.cells for row in builder.rows] == rows
    assert builder.headers == ["Code", "Description", "Amount", "Due"]


def test_wrapped_header_lines_are_joined() -> None:
    builder = TableBuilder(["Cust   Order  ", "No     Date   "], 20)

    assert builder.headers == ["Cust No", "Order Date"]


def test_overrunning_cell_moves_the_column_boundary() -> None:
    builder = TableBuilder(["Name      City"], 22)

    row = builder.add_row("Bob      Springfield")

    assert row.cells == ("Bob", "Springfield")
    assert builder.specs == [TableColumnSpec(0, 9), TableColumnSpec(9, 22)]
    assert builder.headers == ["Name", "City"]


def test_dense_header_uses_attribute_gaps() -> None:
    header = _line(20, (0, "Opt"), (4, "Name"), (12, "Qty"))
    builder = TableBuilder([header], 20)

    row = builder.add_row(_line(20, (0, "1"), (4, "Widget"), (12, "5")))

    assert not builder.favor_spaces
    assert derive_column_specs([header], 20) == [
        TableColumnSpec(0, 4),
        TableColumnSpec(4, 12),
        TableColumnSpec(12, 20),
    ]
    assert row.cells == ("1", "Widget", "5")


def test_dense_row_left_of_first_header_adds_a_column() -> None:
    builder = TableBuilder([_line(20, (4, "Name"), (12, "Qty"))], 20)
    builder.add_row(_line(20, (4, "Bolt"), (12, "3")))

    builder.add_row(_line(20, (0, "7"), (4, "Gear"), (12, "9")))

    assert builder.headers == ["", "Name", "Qty"]
    assert builder.specs[0] == TableColumnSpec(0, 4)
    assert [row.cells for row in builder.rows] == [("", "Bolt", "3"), ("7", "Gear", "9")]


def test_dense_row_skips_empty_columns() -> None:
    builder = TableBuilder([_line(14, (0, "A"), (4, "B"), (8, "C"))], 14)

    row = builder.add_row(_line(14, (0, "a"), (9, "z")))

    assert row.cells == ("a", "", "z")


def test_dense_row_straddling_a_boundary_splits_columns() -> None:
    builder = TableBuilder([_line(14, (0, "A"), (4, "B"), (8, "C"))], 14)

    row = builder.add_row(_line(14, (0, "a"), (6, "wxyz")))

    assert row.cells == ("a", "", "wxyz")
    assert builder.specs[1] == TableColumnSpec(4, 6)
    assert builder.specs[2] == TableColumnSpec(6, 14)


def test_dense_row_extra_cells_fold_into_last_column() -> None:
    builder = TableBuilder([_line(10, (0, "A"), (4, "B"))], 10)

    row = builder.add_row(_line(10, (0, "x"), (4, "y"), (8, "z")))

    assert row.cells == ("x", "y z")


def test_single_header_run_is_not_a_table() -> None:
    assert not TableBuilder(["Notes"], 20).is_table()


def test_filter_and_first_use_match_modes() -> None:
    table = _people_table()

    assert [row["Name"] for row in table.filter({"Status": "Active"})] == ["Alice", "Carol"]
    assert table.filter({"Name": "START:B"}) == [{"ID": "2", "Name": "Bob", "Status": "Inactive"}]
    assert [row["ID"] for row in table.filter({"*": "Carol"})] == ["3"]
    assert table.filter({"Missing": "x"}) == []
    assert len(table.filter(None)) == 3
    assert table.first({"Status": "Inactive"})["Name"] == "Bob"
    assert table.first({"Status": "Gone"}) == {}
    assert table.first()["Name"] == "Alice"


def test_row_queries() -> None:
    table = _people_table()

    assert table.find_row("Name", "Carol") == 2
    assert table.find_row("*", "Inactive") == 1
    assert table.find_row("Name", lambda value: value.startswith("A")) == 0
    assert table.find_row("Name", "Zed") == -1
    assert table.row_count() == 3
    assert table.row_count("Status", "Active") == 2
    assert table.row_count("*", r"REGEX:\d") == 3
    assert table.match("Name", "CONTAIN_ANY_CASE:bob")
    assert not table.match("Name", "Dave")
    assert table.column_data("Name") == ["Alice", "Bob", "Carol"]
    assert table.column_data("Unknown") == []
    assert table.column_count == 3


def test_blank_cells_fall_back_to_input_field_text() -> None:
    hold = EditableField(7, 15, 6, text="Hold")
    builder = TableBuilder(["ID   Name      Status"], 30)
    builder.add_row("1    Alice     Active")
    builder.add_row("2    Bob", [hold])
    table = builder.finish(range(6, 8), range(0, 30), GREEN)

    assert table.column_data("Status") == ["Active", "Hold"]
    assert table.field(1, "Status") == hold
    assert table.field(1, 0) is None
    assert table.field(5, "Status") is None
    assert table.row_fields(1) == (hold,)
    assert table.to_csv().splitlines()[-1] == "2,Bob,Hold"


def test_csv_quotes_separators_and_honours_custom_separators() -> None:
    builder = TableBuilder(["ID   Name          Status"], 30)
    builder.add_row("1    Smith, J      Active")
    table = builder.finish(range(0, 1), range(0, 30), GREEN)

    assert table.to_csv() == 'ID,Name,Status\n1,"Smith, J",Active\n'
    assert table.to_csv(field_separator=";", row_separator="\r\n") == (
        "ID;Name;Status\r\n1;Smith, J;Active\r\n"
    )
    assert table.to_csv(field_separator="||") == "ID||Name||Status\n1||Smith, J||Active\n"
    assert table.to_csv(field_separator=", ").splitlines()[1] == '1, "Smith, J", Active'
    with pytest.raises(ValueError, match="must not be empty"):
        table.to_csv(field_separator="")
