from __future__ import annotations

import json
from pathlib import Path

import pytest

from termscan.snapshot import (
    ATTR_HIGH_INTENSITY,
    ATTR_NORMAL,
    ATTR_UNDERLINE,
    NUL,
    Colour,
    EditableField,
    Graphic,
    Plane,
    ScreenBuilder,
    SnapshotFormatError,
    iter_fields_by_row,
    load_snapshot,
    screen_lines,
    snapshot_from_mapping,
)


def test_builder_defaults_and_writes() -> None:
    builder = ScreenBuilder(rows=2, columns=6)
    builder.write(0, 4, "abcd", colour=Colour.WHITE, attr=ATTR_HIGH_INTENSITY)

    snapshot = builder.snapshot()

    assert snapshot.rows == 2
    assert snapshot.columns == 6
    assert snapshot.row_slice(0, range(0, 6), Plane.TEXT) == (NUL,) * 4 + ("a", "b")
    assert snapshot.row_slice(0, range(4, 6), Plane.COLOR) == (int(Colour.WHITE),) * 2
    assert snapshot.row_slice(1, range(0, 2), Plane.ATTR) == (ATTR_NORMAL,) * 2
    assert snapshot.row_slice(1, range(0, 99), Plane.GRAPHIC) == (int(Graphic.NONE),) * 6
    assert snapshot.row_slice(5, range(0, 6), Plane.TEXT) == ()
    assert screen_lines(snapshot) == ["    ab", "      "]


def test_builder_rejects_negative_dimensions() -> None:
    with pytest.raises(ValueError, match="must not be negative"):
        ScreenBuilder(rows=-1)


def test_add_field_underlines_and_truncates_text() -> None:
    builder = ScreenBuilder(rows=1, columns=10)

    descriptor = builder.add_field(0, 2, 3, "abcdef")

    assert descriptor == EditableField(0, 2, 3, text="abc")
    assert descriptor.end_col == 5
    snapshot = builder.snapshot()
    assert snapshot.row_slice(0, range(2, 5), Plane.ATTR) == (ATTR_UNDERLINE,) * 3
    assert snapshot.editable_fields() == (descriptor,)


def test_editable_field_value_strips_padding() -> None:
    assert EditableField(0, 0, 6, text=f"{NUL}ab {NUL}").value == "ab"


def test_snapshot_from_mapping_decodes_planes() -> None:
    snapshot = snapshot_from_mapping(
        {
            "text": ["Hi~there", "x"],
            "colour": ["ww"],
            "attr": ["hh u"],
            "fields": [{"row": 1, "col": 2, "length": 3, "bypass": True}],
            "windows": [[0, 0, 1, 7]],
        }
    )

    assert snapshot.columns == 8
    assert snapshot.row_slice(0, range(0, 3), Plane.TEXT) == ("H", "i", NUL)
    assert snapshot.row_slice(0, range(0, 3), Plane.COLOR) == (
        int(Colour.WHITE),
        int(Colour.WHITE),
        int(Colour.GREEN),
    )
    assert snapshot.row_slice(0, range(0, 4), Plane.ATTR) == (
        ATTR_HIGH_INTENSITY,
        ATTR_HIGH_INTENSITY,
        ATTR_NORMAL,
        ATTR_UNDERLINE,
    )
    assert snapshot.row_slice(0, range(0, 1), Plane.GRAPHIC) == (int(Graphic.UPPER_LEFT),)
    assert snapshot.row_slice(1, range(7, 8), Plane.GRAPHIC) == (int(Graphic.LOWER_RIGHT),)
    (descriptor,) = snapshot.editable_fields()
    assert descriptor.bypass
    assert descriptor.value == ""


@pytest.mark.parametrize(
    ("document", "message"),
    [
        ([], "must be a mapping"),
        ({"text": "abc"}, "'text' must be a list"),
        ({"text": [1]}, "text rows must be strings"),
        ({"text": ["ab"], "colour": ["z"]}, "unknown colour code 'z'"),
        ({"text": ["ab"], "fields": [{"row": 0}]}, "requires integer row, col and length"),
        ({"text": ["ab"], "windows": [[0, 0, 1]]}, r"\[top, left, bottom, right\]"),
    ],
)
def test_snapshot_from_mapping_rejects_bad_documents(document: object, message: str) -> None:
    with pytest.raises(SnapshotFormatError, match=message):
        snapshot_from_mapping(document)  # type: ignore[arg-type]


def test_load_snapshot_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "screen.json"
    path.write_text(json.dumps({"text": ["abc"], "columns": 5}), encoding="utf-8")

    snapshot = load_snapshot(path)

    assert snapshot.columns == 5
    assert screen_lines(snapshot) == ["abc  "]


def test_iter_fields_by_row_orders_by_column() -> None:
    first = EditableField(3, 20, 2)
    second = EditableField(3, 5, 2)
    other = EditableField(1, 0, 4)

    assert iter_fields_by_row([first, other, second]) == {1: [other], 3: [second, first]}
