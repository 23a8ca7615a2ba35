"""Associate input fields with the text labels printed beside them.

Row layouts seen on 5250 screens and how they are mapped::

    [one label, one field]           Effective Date . . . . . . __________
    [composite label, one field]     Program/Procedure  . . . . _________________
    [too many labels]                Co/Policy/Opt/As of date .  __ ____ ________
    [chained labels/fields]          IRS/Security number . . . ____________ I/S _ Birth date ________
    [separators between fields]      Telephone 1  . . . . . . . ___ ___ - ____
    [dangling labels]                Smoke detector . . . . . . _ - No
    [too many fields]                Policy number . . . . . .  ____ ___________ ______________
                                                                ____________ ________________
"""
from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from typing import Iterable, Sequence, Union

from .color_filter import clean_label, is_blank, next_readable_position
from .readonly_fields import split_panes
from .snapshot import NUL, EditableField

logger = logging.getLogger(__name__)

REGEX_PANE_START = re.compile(r"\x00[A-Za-z0-9 ]{3}")

DEFAULT_DUAL_PANE_THRESHOLD = 0.30


def is_pane_like(line: str) -> bool:
    """Return ``True`` when both the row start and its midpoint open a label."""

    half = len(line) // 2
    if half < 4:
        return False
    return (
        REGEX_PANE_START.fullmatch(line[0:4]) is not None
        and REGEX_PANE_START.fullmatch(line[half : half + 4]) is not None
    )


def detect_dual_pane(
    lines: Iterable[str], threshold: float = DEFAULT_DUAL_PANE_THRESHOLD
) -> bool:
    """Decide whether a screen lays its fields out in two side-by-side panes."""

    non_blank = [line for line in lines if not is_blank(line)]
    if not non_blank:
        return False
    pane_like = sum(1 for line in non_blank if is_pane_like(line))
    return pane_like / len(non_blank) >= threshold


@dataclass(frozen=True)
class SemanticField:
    """Input field bound to the label that describes it."""

    label: str
    value: str
    is_read_only: bool = False
    source_field: EditableField | None = None


@dataclass(frozen=True)
class LabelEntry:
    """Text run found on a row; ``column``/``end`` are absolute screen columns."""

    column: int
    end: int
    text: str


@dataclass(frozen=True)
class FieldEntry:
    """Input field positioned on a row."""

    column: int
    field: EditableField

    @property
    def end(self) -> int:
        return self.column + self.field.length


RowEntry = Union[LabelEntry, FieldEntry]


@dataclass
class RowPane:
    """Entries of one pane plus the field start columns it owns."""

    left: int
    lower: int
    upper: int
    entries: list[RowEntry] = field(default_factory=list)

    def owns(self, descriptor: EditableField) -> bool:
        return self.lower <= descriptor.start_col < self.upper


def _label_entries(pane_text: str, left: int) -> list[LabelEntry]:
    labels: list[LabelEntry] = []
    start = next_readable_position(pane_text, 0)
    while start < len(pane_text):
        end = pane_text.find(NUL, start)
        if end == -1:
            end = len(pane_text)
        label = clean_label(pane_text[start:end])
        # Single characters are separators such as "-" or "/" between fields.
        if len(label) > 1:
            labels.append(LabelEntry(column=left + start, end=left + end, text=label))
        start = next_readable_position(pane_text, end)
    return labels


def mask_field_cells(
    line: str, fields: Iterable[EditableField], column_offset: int = 0
) -> str:
    """Return ``line`` with the cells covered by ``fields`` replaced by NUL.

    Field content drawn in the content colour right after a label would
    otherwise read as part of that label.
    """

    cells = list(line)
    for descriptor in fields:
        start = max(0, descriptor.start_col - column_offset)
        end = min(len(cells), descriptor.end_col - column_offset)
        for index in range(start, end):
            cells[index] = NUL
    return "".join(cells)


def arrange_row_entries(
    line: str,
    fields: Sequence[EditableField],
    panes: int = 1,
    column_offset: int = 0,
) -> list[RowPane]:
    """Collect the labels and fields of each pane of a row ordered by column.

    Panes without any field are dropped, trailing labels are trimmed and labels
    lying entirely inside a field (placeholder text) are discarded.
    """

    if not line or not fields:
        return []

    pane_count = max(1, panes)
    width = len(line) // pane_count
    line = mask_field_cells(line, fields, column_offset)
    arranged: list[RowPane] = []
    for index, pane_text in enumerate(split_panes(line, pane_count)):
        left = column_offset + width * index
        pane = RowPane(
            left=left,
            lower=-sys.maxsize if index == 0 else left,
            upper=sys.maxsize if index == pane_count - 1 else left + width,
        )

        by_column: dict[int, RowEntry] = {
            entry.column: entry for entry in _label_entries(pane_text, left)
        }
        for descriptor in fields:
            if pane.owns(descriptor):
                by_column[descriptor.start_col] = FieldEntry(descriptor.start_col, descriptor)

        entries = [by_column[column] for column in sorted(by_column)]
        if not any(isinstance(entry, FieldEntry) for entry in entries):
            continue

        while entries and isinstance(entries[-1], LabelEntry):
            entries.pop()

        field_entries = [entry for entry in entries if isinstance(entry, FieldEntry)]
        pane.entries = [
            entry
            for entry in entries
            if isinstance(entry, FieldEntry)
            or not any(
                candidate.column <= entry.column and candidate.end >= entry.end
                for candidate in field_entries
            )
        ]
        arranged.append(pane)
    return arranged


def _split_parts(label: str) -> list[str]:
    return [part for part in (clean_label(piece) for piece in label.split("/")) if part]


class FieldAssociator:
    """Registry of labelled input fields built up row by row during one scan."""

    def __init__(self) -> None:
        self.fields: dict[str, SemanticField] = {}
        self._open_labels: dict[int, str] = {}
        self._consumed: set[EditableField] = set()

    def unique_label(self, label: str) -> str:
        """Return ``label`` or ``label@N`` for the first free duplicate slot."""

        candidate = label
        duplicate = 0
        while candidate in self.fields:
            duplicate += 1
            candidate = f"{label}@{duplicate}"
        return candidate

    def register(self, label: str, descriptor: EditableField) -> str | None:
        """Bind ``descriptor`` under a unique form of ``label``; bypass fields are skipped."""

        self._consumed.add(descriptor)
        if descriptor.bypass or not label:
            return None
        key = self.unique_label(label)
        self.fields[key] = SemanticField(
            label=key,
            value=descriptor.value,
            is_read_only=descriptor.bypass,
            source_field=descriptor,
        )
        return key

    def labels_for_row(self, row: int) -> set[str]:
        """Return the base labels (without ``@N``) bound to fields starting on ``row``."""

        return {
            key.split("@", 1)[0]
            for key, semantic in self.fields.items()
            if semantic.source_field is not None and semantic.source_field.start_row == row
        }

    def _assign(
        self,
        label: str,
        fields: list[EditableField],
        continuation: list[EditableField],
    ) -> str:
        if continuation:
            fields = fields + [item for item in continuation if item not in fields]
            self._consumed.update(continuation)
        if not fields:
            return label

        cleaned = clean_label(label)
        # The unsplit label always maps to the first field so keystrokes can be
        # directed at the start of the field set.
        self.register(cleaned, fields[0])

        parts = _split_parts(label)
        if len(fields) == 1:
            if len(parts) > 1:
                for part in parts:
                    self.register(part, fields[0])
            return ""

        if len(parts) <= 1:
            for descriptor in fields[1:]:
                self.register(cleaned, descriptor)
            return ""

        for part, descriptor in zip(parts, fields):
            self.register(part, descriptor)

        if len(fields) > len(parts):
            logger.warning(
                "unmapped fields found for the label [%s]; mapped to last label", label
            )
            for descriptor in fields[len(parts) :]:
                self.register(parts[-1], descriptor)

        return "/".join(parts[len(fields) :])

    def associate_row(
        self,
        row: int,
        panes: Sequence[RowPane],
        next_line: str = "",
        next_fields: Sequence[EditableField] = (),
        column_offset: int = 0,
    ) -> None:
        """Walk each pane of ``row`` and bind its label runs to the following fields.

        ``next_line``/``next_fields`` describe the row below; its fields join the
        last field set of a pane when no text precedes them on that row.
        """

        for index, pane in enumerate(panes):
            continuation = self._continuation(pane, next_line, next_fields, column_offset)
            entries = [
                entry
                for entry in pane.entries
                if not (isinstance(entry, FieldEntry) and entry.field in self._consumed)
            ]
            current_label = ""
            position = 0
            while position < len(entries):
                if isinstance(entries[position], LabelEntry):
                    labels: list[str] = []
                    while position < len(entries) and isinstance(entries[position], LabelEntry):
                        labels.append(entries[position].text)
                        position += 1
                    if position >= len(entries):
                        break
                    current_label = " ".join(labels).strip()
                    fields = self._gather_fields(entries, position)
                    position += len(fields)
                    last_set = position >= len(entries)
                    self._open_labels[index] = self._assign(
                        current_label, fields, continuation if last_set else []
                    )
                    continue

                fields = self._gather_fields(entries, position)
                position += len(fields)
                last_set = position >= len(entries)
                open_label = self._open_labels.get(index, "")
                if open_label:
                    self._open_labels[index] = self._assign(
                        open_label, fields, continuation if last_set else []
                    )
                    continue

                logger.warning("unmapped field(s) found in row %d", row)
                if current_label:
                    last_part = (_split_parts(current_label) or [clean_label(current_label)])[-1]
                    for descriptor in fields:
                        self.register(last_part, descriptor)
                else:
                    logger.warning(
                        "dropping %d field(s) in row %d without a label", len(fields), row
                    )
                    self._consumed.update(fields)

    @staticmethod
    def _gather_fields(entries: Sequence[RowEntry], position: int) -> list[EditableField]:
        fields: list[EditableField] = []
        while position < len(entries) and isinstance(entries[position], FieldEntry):
            fields.append(entries[position].field)
            position += 1
        return fields

    def _continuation(
        self,
        pane: RowPane,
        next_line: str,
        next_fields: Sequence[EditableField],
        column_offset: int,
    ) -> list[EditableField]:
        owned = [
            descriptor
            for descriptor in next_fields
            if pane.owns(descriptor) and descriptor not in self._consumed
        ]
        if not owned:
            return []
        start = max(0, pane.left - column_offset)
        leading = next_line[start : max(start, owned[0].start_col - column_offset)]
        return owned if is_blank(leading) else []


__all__ = [
    "DEFAULT_DUAL_PANE_THRESHOLD",
    "FieldAssociator",
    "FieldEntry",
    "LabelEntry",
    "REGEX_PANE_START",
    "RowEntry",
    "RowPane",
    "SemanticField",
    "arrange_row_entries",
    "detect_dual_pane",
    "is_pane_like",
    "mask_field_cells",
]
