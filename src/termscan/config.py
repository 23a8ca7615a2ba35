"""Scan settings and their TOML loader."""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

import tomllib

from .snapshot import ATTR_HIGH_INTENSITY, Colour


class ScanConfigError(ValueError):
    """Raised when a scan configuration file fails validation."""


VISIBLE_COLOURS: tuple[int, ...] = (
    int(Colour.BLUE),
    int(Colour.CYAN),
    int(Colour.GREEN),
    int(Colour.MAGENTA),
    int(Colour.RED),
    int(Colour.WHITE),
    int(Colour.YELLOW),
)


@dataclass(frozen=True)
class ScanConfig:
    """Settings resolved once before a screen is scanned."""

    title_lines: int = 2
    favor_first_table: bool = True
    content_colors: tuple[int, ...] = (int(Colour.GREEN),)
    title_colors: tuple[int, ...] = (int(Colour.WHITE),)
    visible_colors: tuple[int, ...] = VISIBLE_COLOURS
    table_header_attrs: tuple[int, ...] = (ATTR_HIGH_INTENSITY,)
    more_sentinels: tuple[str, ...] = ("More...", "More ...")
    bottom_sentinels: tuple[str, ...] = ("Bottom",)
    dual_pane_threshold: float = 0.30
    same_content_tolerance: int = 10

    @property
    def table_end_sentinels(self) -> tuple[str, ...]:
        """Header texts that mark the end of a table rather than a new one."""

        return self.more_sentinels + self.bottom_sentinels


_COLOUR_KEYS = frozenset({"content_colors", "title_colors", "visible_colors"})
_STRING_TUPLE_KEYS = frozenset({"more_sentinels", "bottom_sentinels"})
_KNOWN_KEYS = frozenset(item.name for item in fields(ScanConfig))


def load_scan_config(config_path: Path, profile: str | None = None) -> ScanConfig:
    """Parse ``config_path`` and apply the ``[scan.profiles.<profile>]`` overrides."""

    with config_path.open("rb") as stream:
        try:
            data = tomllib.load(stream)
        except tomllib.TOMLDecodeError as exc:
            raise ScanConfigError(f"{config_path} is not valid TOML: {exc}") from exc
    return scan_config_from_mapping(data, profile=profile)


def scan_config_from_mapping(
    data: Mapping[str, Any], profile: str | None = None
) -> ScanConfig:
    """Resolve a :class:`ScanConfig` from an already parsed document."""

    scan = data.get("scan", {})
    if not isinstance(scan, Mapping):
        raise ScanConfigError("[scan] section must be a mapping")

    profiles = scan.get("profiles", {})
    if not isinstance(profiles, Mapping):
        raise ScanConfigError("[scan.profiles] must be a table of profile tables")

    settings = {key: value for key, value in scan.items() if key != "profiles"}
    config = replace(ScanConfig(), **_parse_settings(settings, section="[scan]"))

    if profile is not None:
        overrides = profiles.get(profile)
        if overrides is None:
            raise ScanConfigError(f"profile {profile!r} is not defined")
        if not isinstance(overrides, Mapping):
            raise ScanConfigError(f"[scan.profiles.{profile}] must be a mapping")
        config = replace(
            config, **_parse_settings(overrides, section=f"[scan.profiles.{profile}]")
        )
    return config


def _parse_settings(raw: Mapping[str, Any], *, section: str) -> Dict[str, Any]:
    parsed: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in _KNOWN_KEYS:
            raise ScanConfigError(f"{section} has unknown setting {key!r}")
        if key in _COLOUR_KEYS:
            parsed[key] = _coerce_colours(value, key=key)
        elif key in _STRING_TUPLE_KEYS:
            parsed[key] = _coerce_strings(value, key=key)
        elif key == "table_header_attrs":
            parsed[key] = _coerce_attrs(value)
        elif key == "favor_first_table":
            if not isinstance(value, bool):
                raise ScanConfigError("favor_first_table must be a boolean")
            parsed[key] = value
        elif key == "dual_pane_threshold":
            parsed[key] = _coerce_threshold(value)
        else:
            parsed[key] = _coerce_count(value, key=key)
    return parsed


def _coerce_count(value: Any, *, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScanConfigError(f"{key} must be an integer")
    if value < 0:
        raise ScanConfigError(f"{key} must not be negative")
    return value


def _coerce_threshold(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ScanConfigError("dual_pane_threshold must be a number")
    threshold = float(value)
    if not 0.0 < threshold <= 1.0:
        raise ScanConfigError("dual_pane_threshold must be within (0, 1]")
    return threshold


def _coerce_colour(value: Any, *, key: str) -> int:
    if isinstance(value, str):
        try:
            return int(Colour[value.strip().upper()])
        except KeyError as exc:
            raise ScanConfigError(f"{key} has unknown colour {value!r}") from exc
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return int(Colour(value))
        except ValueError as exc:
            raise ScanConfigError(f"{key} has unknown colour code {value}") from exc
    raise ScanConfigError(f"{key} entries must be colour names or codes")


def _coerce_colours(value: Any, *, key: str) -> tuple[int, ...]:
    if not isinstance(value, list) or not value:
        raise ScanConfigError(f"{key} must be a non-empty array")
    return tuple(_coerce_colour(item, key=key) for item in value)


def _coerce_attrs(value: Any) -> tuple[int, ...]:
    if not isinstance(value, list) or not value:
        raise ScanConfigError("table_header_attrs must be a non-empty array")
    attrs = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 0xFF:
            raise ScanConfigError("table_header_attrs entries must be attribute bytes")
        attrs.append(item)
    return tuple(attrs)


def _coerce_strings(value: Any, *, key: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) and item for item in value):
        raise ScanConfigError(f"{key} must be an array of non-empty strings")
    return tuple(value)


__all__ = [
    "ScanConfig",
    "ScanConfigError",
    "VISIBLE_COLOURS",
    "load_scan_config",
    "scan_config_from_mapping",
]
