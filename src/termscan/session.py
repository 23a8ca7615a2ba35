"""Session capability used to harvest a table across pages and key in row options."""
from __future__ import annotations

from typing import Protocol

from .snapshot import EditableField, ScreenSnapshot, screen_lines

KEY_RESET = "{RESET}"
KEY_PAGE_UP = "{PAGEUP}"
KEY_PAGE_DOWN = "{PAGEDOWN}"


class SessionControl(Protocol):
    """Live terminal session driven by the table harvester.

    ``send_keys`` accepts key mnemonics such as ``{PAGEDOWN}``; translating
    them to host keystrokes is the session's business.
    """

    more_text: str
    bottom_text: str

    def send_keys(self, keys: str) -> None: ...

    def goto_field(self, field: EditableField) -> None: ...

    def refresh(self) -> None: ...

    def wait_until_stable(self) -> bool: ...

    def is_keyboard_locked(self) -> bool: ...

    def snapshot(self) -> ScreenSnapshot: ...


def last_line(snapshot: ScreenSnapshot) -> str:
    """Return the bottom screen line, where hosts print paging indicators."""

    lines = screen_lines(snapshot)
    return lines[-1] if lines else ""


__all__ = [
    "KEY_PAGE_DOWN",
    "KEY_PAGE_UP",
    "KEY_RESET",
    "SessionControl",
    "last_line",
]
