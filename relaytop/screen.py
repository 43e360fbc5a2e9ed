"""Terminal mode and frame layout for the dashboard.

Control strings come from terminfo via curses, the same database ``tput``
reads. :class:`Screen` is a context manager around "alternate screen mode":
entering switches to the alternate buffer with auto-wrap off and installs
signal handlers; leaving puts everything back, however the block is left
(normal return, exception, or a termination signal turned into SystemExit).
"""

from __future__ import annotations

import curses
import shutil
import signal
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from types import FrameType
from typing import Any, TextIO

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP, signal.SIGQUIT)


class TerminalCapabilityError(Exception):
    """A control sequence the dashboard needs is not available."""


@dataclass(frozen=True)
class Capabilities:
    """Control strings for one terminal type."""

    enter_alt: str
    exit_alt: str
    hide_cursor: str
    show_cursor: str
    wrap_off: str
    wrap_on: str
    clear: str
    home: str
    clear_eol: str
    clear_eos: str
    bold: str
    reverse: str
    reset: str
    column: Callable[[int], str]


# terminfo name -> Capabilities field
_STRING_CAPS = {
    "smcup": "enter_alt",
    "rmcup": "exit_alt",
    "civis": "hide_cursor",
    "cnorm": "show_cursor",
    "rmam": "wrap_off",
    "smam": "wrap_on",
    "clear": "clear",
    "home": "home",
    "el": "clear_eol",
    "ed": "clear_eos",
    "bold": "bold",
    "rev": "reverse",
    "sgr0": "reset",
}


def _column_address(hpa: bytes | None, cuf: bytes | None) -> Callable[[int], str] | None:
    """Absolute column positioning, preferring ``hpa`` over ``\\r`` + ``cuf``."""
    if hpa:
        return lambda col: curses.tparm(hpa, col).decode()
    if cuf:
        return lambda col: "\r" + (curses.tparm(cuf, col).decode() if col > 0 else "")
    return None


def load_capabilities(term: str | None = None) -> Capabilities:
    """Read every control string the dashboard needs from terminfo.

    Raises:
        TerminalCapabilityError: If the terminal type is unknown or lacks a
            required capability.
    """
    try:
        curses.setupterm(term)
    except (curses.error, OSError) as e:
        raise TerminalCapabilityError(
            f"cannot initialise terminal {term or '$TERM'}: {e}"
        ) from e

    found: dict[str, Any] = {}
    missing: list[str] = []
    for name, field_name in _STRING_CAPS.items():
        value = curses.tigetstr(name)
        if not value:
            missing.append(name)
            continue
        found[field_name] = value.decode()

    column = _column_address(curses.tigetstr("hpa"), curses.tigetstr("cuf"))
    if column is None:
        missing.append("hpa")

    if missing:
        raise TerminalCapabilityError(
            f"terminal lacks required capabilities: {', '.join(missing)}"
        )
    return Capabilities(column=column, **found)


def centre_offset(term_width: int, panel_width: int) -> int:
    """Column at which a panel starts when centred; 0 if the terminal is narrower."""
    return max(0, (term_width - panel_width) // 2)


class Screen:
    """Owns terminal mode and draws centred frames."""

    def __init__(
        self,
        caps: Capabilities,
        panel_width: int = 78,
        stream: TextIO | None = None,
        terminal_width: Callable[[], int] | None = None,
    ) -> None:
        self.caps = caps
        self.panel_width = panel_width
        self._out = stream if stream is not None else sys.stdout
        self._terminal_width = terminal_width or (
            lambda: shutil.get_terminal_size().columns
        )
        self._resized = False
        self._active = False
        self._saved_handlers: dict[int, Any] = {}

    # ── Mode management ──────────────────────────────────────────────────

    def __enter__(self) -> Screen:
        # __exit__ does not run if we are interrupted in here
        self._active = True
        try:
            self._install_handlers()
            self._emit(self.caps.enter_alt + self.caps.wrap_off + self.caps.clear)
        except BaseException:
            self.restore()
            raise
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()

    def restore(self) -> None:
        """Return the terminal to its normal state. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        # A second Ctrl+C must not cut the exit sequence short
        for sig in TERMINATION_SIGNALS:
            if sig in self._saved_handlers:
                signal.signal(sig, signal.SIG_IGN)
        try:
            self._emit(
                self.caps.reset
                + self.caps.show_cursor
                + self.caps.wrap_on
                + self.caps.exit_alt
            )
        finally:
            self._restore_handlers()

    @property
    def active(self) -> bool:
        return self._active

    # ── Signals ──────────────────────────────────────────────────────────

    def _install_handlers(self) -> None:
        self._saved_handlers[signal.SIGWINCH] = signal.signal(
            signal.SIGWINCH, self._on_resize
        )
        for sig in TERMINATION_SIGNALS:
            self._saved_handlers[sig] = signal.signal(sig, self._on_terminate)

    def _restore_handlers(self) -> None:
        while self._saved_handlers:
            sig, handler = self._saved_handlers.popitem()
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def _on_resize(self, signum: int, frame: FrameType | None) -> None:
        self._resized = True

    def _on_terminate(self, signum: int, frame: FrameType | None) -> None:
        # Unwinds through __exit__, which restores the terminal
        raise SystemExit(0)

    @property
    def resize_pending(self) -> bool:
        return self._resized

    # ── Drawing ──────────────────────────────────────────────────────────

    def offset(self) -> int:
        return centre_offset(self._terminal_width(), self.panel_width)

    def hide_cursor(self) -> None:
        self._emit(self.caps.hide_cursor)

    def show_cursor(self) -> None:
        self._emit(self.caps.show_cursor)

    def draw(self, lines: Iterable[str]) -> None:
        """Paint one frame, each line at the centring column.

        After a resize the whole screen is cleared first, since the old frame
        sits at a stale offset.
        """
        if self._resized:
            self._resized = False
            parts = [self.caps.clear]
        else:
            parts = [self.caps.home]
        col = self.caps.column(self.offset())
        for line in lines:
            parts.append(f"{col}{line}{self.caps.clear_eol}\n")
        parts.append(self.caps.clear_eos)
        self._emit("".join(parts))

    def _emit(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()
