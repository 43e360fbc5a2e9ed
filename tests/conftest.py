"""Shared fixtures: plain ANSI control strings so tests never touch terminfo."""

from __future__ import annotations

import pytest

from relaytop.screen import Capabilities


def ansi_capabilities() -> Capabilities:
    return Capabilities(
        enter_alt="\033[?1049h",
        exit_alt="\033[?1049l",
        hide_cursor="\033[?25l",
        show_cursor="\033[?25h",
        wrap_off="\033[?7l",
        wrap_on="\033[?7h",
        clear="\033[H\033[2J",
        home="\033[H",
        clear_eol="\033[K",
        clear_eos="\033[J",
        bold="\033[1m",
        reverse="\033[7m",
        reset="\033[m",
        column=lambda col: f"\033[{col + 1}G",
    )


@pytest.fixture
def caps() -> Capabilities:
    return ansi_capabilities()


STATUS_DOC = {
    "version": "v1.27.0",
    "goOS": "linux",
    "goArch": "amd64",
    "numActiveSessions": 12,
    "numConnections": 40,
    "bytesProxied": 5 * 1024**3,
    "kbps10s1m5m15m30m60m": [400, 350.5, 300, 250, 200, 150],
    "uptimeSeconds": 3 * 86400 + 4 * 3600 + 5 * 60,
    "startTime": "2026-10-16T08:00:00.123456789Z",
    "options": {
        "provided-by": "example.org",
        "global-rate": 0,
        "per-session-rate": 1048576,
    },
}


@pytest.fixture
def status_doc() -> dict:
    return {**STATUS_DOC, "options": dict(STATUS_DOC["options"])}
