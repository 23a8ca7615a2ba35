"""Semantic extraction of titles, fields and tables from 5250 terminal screens."""
from __future__ import annotations

from .color_filter import (
    clean_label,
    clean_screen_text,
    filter_row,
    filter_row_by_attribute,
    filter_rows_by_color,
)
from .config import ScanConfig, ScanConfigError, load_scan_config
from .label_fields import FieldAssociator, SemanticField, detect_dual_pane
from .matching import poly_match
from .readonly_fields import extract_read_only_fields
from .screen_object import ScreenObject, find_window, scan, scan_nested
from .session import SessionControl
from .snapshot import (
    EditableField,
    GridSnapshot,
    Plane,
    ScreenBuilder,
    ScreenSnapshot,
    SnapshotFormatError,
    load_snapshot,
    snapshot_from_mapping,
)
from .table import ScreenTable, TableBuilder, TableColumnSpec, TableRow

__all__ = [
    "EditableField",
    "FieldAssociator",
    "GridSnapshot",
    "Plane",
    "ScanConfig",
    "ScanConfigError",
    "ScreenBuilder",
    "ScreenObject",
    "ScreenSnapshot",
    "ScreenTable",
    "SemanticField",
    "SessionControl",
    "SnapshotFormatError",
    "TableBuilder",
    "TableColumnSpec",
    "TableRow",
    "clean_label",
    "clean_screen_text",
    "detect_dual_pane",
    "extract_read_only_fields",
    "filter_row",
    "filter_row_by_attribute",
    "filter_rows_by_color",
    "find_window",
    "load_scan_config",
    "load_snapshot",
    "poly_match",
    "scan",
    "scan_nested",
    "snapshot_from_mapping",
]
