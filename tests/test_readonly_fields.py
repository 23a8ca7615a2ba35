from __future__ import annotations

from termscan.readonly_fields import extract_read_only_fields, find_label, split_panes

NUL = "\x00"


def test_colon_label_takes_rest_of_line() -> None:
    assert extract_read_only_fields("  System: ABCDEFG  ") == [("System", "ABCDEFG")]


def test_several_labels_on_one_line() -> None:
    line = f"Client ID . . .: 1234567890{NUL * 2}Name  . . . .: John Smith"

    assert extract_read_only_fields(line) == [
        ("Client ID", "1234567890"),
        ("Name", "John Smith"),
    ]


def test_dotted_label_followed_by_attribute_cell() -> None:
    line = f"Effective Date . . . .{NUL}01/01/2024{NUL * 4}"

    assert extract_read_only_fields(line) == [("Effective Date", "01/01/2024")]


def test_dotted_label_with_trailing_spaces() -> None:
    line = f"Branch . . .   {NUL}Downtown{NUL * 3}"

    assert extract_read_only_fields(line) == [("Branch", "Downtown")]


def test_composite_label_maps_segments_one_to_one() -> None:
    fields = extract_read_only_fields("Policy/Opt . . : 12345/A")

    assert fields == [
        ("Policy/Opt", "12345/A"),
        ("Policy", "12345"),
        ("Opt", "A"),
    ]


def test_composite_label_consumes_runs_when_segments_differ() -> None:
    line = f"Co/Policy . . : 01{NUL * 2}ABC123{NUL * 2}X"

    fields = extract_read_only_fields(line)

    assert fields[0][0] == "Co/Policy"
    assert fields[1:] == [("Co", "01"), ("Policy", "ABC123 X")]


def test_dual_pane_lines_are_scanned_per_half() -> None:
    left = "Name: Bob".ljust(20, NUL)
    right = "Age: 42".ljust(20, NUL)

    assert split_panes(left + right, 2) == [left, right]
    assert extract_read_only_fields(left + right, panes=2) == [("Name", "Bob"), ("Age", "42")]


def test_plain_text_has_no_display_fields() -> None:
    assert extract_read_only_fields("Type options, press Enter.") == []
    assert extract_read_only_fields("") == []


def test_find_label_prefers_earliest_match() -> None:
    matched = find_label(f"Total . . .{NUL}99   Due: 5")

    assert matched is not None
    assert matched.group(0) == f"Total . . .{NUL}"
