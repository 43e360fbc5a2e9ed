"""Live terminal dashboard for a relay server's status endpoint.

Polls ``http://<host>:<port>/status`` every interval and redraws a centred
78-column panel: session and connection counters, rate limits, total bytes
proxied, the six throughput windows, and a bar graph of the 10-second
throughput over the last few minutes.

Usage:
    uv run relaytop
    uv run relaytop relay.example.org 22070 --interval 5
"""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import NoReturn

from relaytop.config import Settings, dump_default_config, load_config, settings_from_config
from relaytop.graph import render_bar_graph
from relaytop.history import HistoryBuffer
from relaytop.screen import Capabilities, Screen, TerminalCapabilityError, load_capabilities
from relaytop.status import (
    KBPS_WINDOWS,
    FetchError,
    StatusSnapshot,
    fetch_status,
    status_url,
)
from relaytop.units import fmt_bytes, fmt_duration, fmt_kbps, fmt_rate_limit

# ── Panel layout ───────────────────────────────────────────────────────────

_LABEL_W = 15
_RATE_COL_W = 10


def _fit(text: str, width: int) -> str:
    return text.ljust(width)[:width]


def _bold(caps: Capabilities, text: str) -> str:
    return f"{caps.bold}{text}{caps.reset}"


def _two_columns(left: str, right: str, width: int) -> str:
    half = width // 2
    return _fit(_fit(left, half) + right, width)


def render_panel(
    snapshot: StatusSnapshot,
    history: HistoryBuffer,
    settings: Settings,
    caps: Capabilities,
    now: datetime,
) -> list[str]:
    """Lay out one frame. Every line is ``settings.panel_width`` visible columns."""
    w = settings.panel_width

    clock = now.strftime("%H:%M:%S")
    title = f" relaytop  {settings.target}"
    title_bar = title + clock.rjust(w - len(title) - 1) + " "
    lines = [f"{caps.reverse}{caps.bold}{_fit(title_bar, w)}{caps.reset}", ""]

    relay = f" Relay {snapshot.version} ({snapshot.platform})"
    provider = f"provided by {snapshot.provided_by}" if snapshot.provided_by else ""
    lines.append(_two_columns(relay, provider, w))
    started = snapshot.start_time.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    uptime = fmt_duration(snapshot.uptime_seconds)
    lines.append(_fit(f" {'Uptime':<{_LABEL_W - 1}}{uptime}  (since {started})", w))
    lines.append("")

    lines.append(
        _two_columns(
            f" {'Sessions':<{_LABEL_W - 1}}{snapshot.active_sessions}",
            f"{'Connections':<{_LABEL_W}}{snapshot.connections}",
            w,
        )
    )
    lines.append(
        _two_columns(
            f" {'Global limit':<{_LABEL_W - 1}}{fmt_rate_limit(snapshot.global_rate)}",
            f"{'Per session':<{_LABEL_W}}{fmt_rate_limit(snapshot.per_session_rate)}",
            w,
        )
    )
    lines.append(_fit(f" {'Proxied':<{_LABEL_W - 1}}{fmt_bytes(snapshot.bytes_proxied)}", w))
    lines.append("")

    header = f" {'Throughput':<{_LABEL_W - 1}}" + "".join(
        f"{name:>{_RATE_COL_W}}" for name in KBPS_WINDOWS
    )
    lines.append(_bold(caps, _fit(header, w)))
    rates = " " * _LABEL_W + "".join(f"{fmt_kbps(v):>{_RATE_COL_W}}" for v in snapshot.kbps)
    lines.append(_fit(rates, w))
    lines.append("")

    span = fmt_duration(history.capacity * settings.interval)
    lines.append(
        _bold(caps, _fit(f" History (last {span}, every {fmt_duration(settings.interval)})", w))
    )
    lines.extend(
        render_bar_graph(
            history.snapshot(),
            history.capacity,
            rows=settings.bar_rows,
            width=w,
        )
    )
    return lines


# ── Main loop ──────────────────────────────────────────────────────────────


class State(Enum):
    IDLE = "idle"
    POLLING = "polling"


class Dashboard:
    """Fixed-period sampler: fetch, record, render, sleep, repeat.

    A fetch error ends the loop by propagating; there is no retry.
    """

    def __init__(
        self,
        settings: Settings,
        screen: Screen,
        fetch: Callable[[str, float], StatusSnapshot] = fetch_status,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self.screen = screen
        self.history = HistoryBuffer(settings.history_size)
        self.url = status_url(settings.host, settings.port)
        self.state = State.IDLE
        self._fetch = fetch
        self._sleep = sleep
        self._clock = clock

    def cycle(self) -> StatusSnapshot:
        """Poll once and redraw."""
        self.state = State.POLLING
        self.screen.hide_cursor()
        # Bounded by the interval so a stalled request cannot overlap the next cycle
        snapshot = self._fetch(self.url, self.settings.interval)
        self.history.record(snapshot.sample)
        self.screen.draw(
            render_panel(
                snapshot, self.history, self.settings, self.screen.caps, self._clock()
            )
        )
        self.state = State.IDLE
        return snapshot

    def run(self, max_cycles: int | None = None) -> None:
        done = 0
        while max_cycles is None or done < max_cycles:
            self.cycle()
            done += 1
            self.screen.show_cursor()
            self._sleep(self.settings.interval)


# ── CLI entry point ────────────────────────────────────────────────────────


def _fatal(message: str, caps: Capabilities | None) -> NoReturn:
    text = f"relaytop: {message}"
    if caps is not None:
        text = f"{caps.bold}{text}{caps.reset}"
    print(text, file=sys.stderr)
    raise SystemExit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relaytop",
        description="Live terminal dashboard for a relay server's /status endpoint.",
    )
    parser.add_argument(
        "host",
        nargs="?",
        default=None,
        help="Relay host (default: localhost)",
    )
    parser.add_argument(
        "port",
        nargs="?",
        type=int,
        default=None,
        help="Relay status port (default: 22070)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between polls; also the request timeout (default: 10)",
    )
    parser.add_argument(
        "--history",
        type=int,
        default=None,
        metavar="N",
        help="Number of samples in the history graph (default: 24)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    settings = settings_from_config(load_config(args.config), args)

    caps: Capabilities | None = None
    try:
        caps = load_capabilities()
        with Screen(caps, settings.panel_width) as screen:
            Dashboard(settings, screen).run()
    except (FetchError, TerminalCapabilityError) as e:
        # Screen has already restored the terminal by the time we get here
        _fatal(str(e), caps)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
