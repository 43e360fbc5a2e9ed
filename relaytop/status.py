"""Relay status endpoint client.

Fetches ``http://<host>:<port>/status`` once per dashboard tick and turns the
JSON document into an immutable :class:`StatusSnapshot`. Transport and parse
failures are raised, never papered over: the dashboard refuses to show stale
data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import requests

from relaytop.history import coerce_sample

USER_AGENT = "relaytop/1.0"

KBPS_KEY = "kbps10s1m5m15m30m60m"
KBPS_WINDOWS = ("10s", "1m", "5m", "15m", "30m", "60m")


# ── Errors ─────────────────────────────────────────────────────────────────


class FetchError(Exception):
    """Base class for anything that stops a status snapshot being produced."""


class TransportError(FetchError):
    """Connection refused, timeout, DNS failure or a non-2xx response."""


class ParseError(FetchError):
    """Response body is not a well-formed status document."""


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StatusSnapshot:
    """One poll's worth of relay status."""

    version: str
    go_os: str
    go_arch: str
    active_sessions: int
    connections: int
    bytes_proxied: int
    kbps: tuple[float, float, float, float, float, float]
    uptime_seconds: int
    start_time: datetime
    provided_by: str | None = None
    global_rate: int | None = None  # bytes/s, None = unlimited
    per_session_rate: int | None = None

    @property
    def sample(self) -> float:
        """The 10-second throughput window, in kilobits/sec."""
        return self.kbps[0]

    @property
    def platform(self) -> str:
        return f"{self.go_os}-{self.go_arch}"


# ── Parsing ────────────────────────────────────────────────────────────────


def _require(doc: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    if key not in doc:
        raise ParseError(f"status document is missing '{key}'")
    value = doc[key]
    # bool is an int subclass; JSON true/false is never a valid counter
    if isinstance(value, bool) or not isinstance(value, kind):
        kinds = kind if isinstance(kind, tuple) else (kind,)
        expected = " or ".join(k.__name__ for k in kinds)
        raise ParseError(f"'{key}' should be {expected}, got {type(value).__name__}")
    return value


def _require_count(doc: dict[str, Any], key: str) -> int:
    value = _require(doc, key, (int, float))
    if not math.isfinite(value) or value < 0:
        raise ParseError(f"'{key}' is not a valid count: {value}")
    return int(value)


def _rate_limit(options: dict[str, Any], key: str) -> int | None:
    value = options.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"'options.{key}' should be a number, got {value!r}")
    return int(value) if math.isfinite(value) and value > 0 else None


def _kbps(doc: dict[str, Any]) -> tuple[float, float, float, float, float, float]:
    raw = doc.get(KBPS_KEY)
    values = list(raw) if isinstance(raw, list) else []
    values += [None] * (len(KBPS_WINDOWS) - len(values))
    a, b, c, d, e, f = (coerce_sample(v) for v in values[: len(KBPS_WINDOWS)])
    return (a, b, c, d, e, f)


def parse_status(doc: Any) -> StatusSnapshot:
    """Build a snapshot from a decoded status document.

    Throughput entries that are missing or unparseable count as 0; every
    other required field must be present and well-typed.

    Raises:
        ParseError: If the document is not an object or a required field is
            missing, mistyped or malformed.
    """
    if not isinstance(doc, dict):
        raise ParseError(f"status document should be an object, got {type(doc).__name__}")

    options = doc.get("options", {})
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise ParseError("'options' should be an object")

    start_raw = _require(doc, "startTime", str)
    try:
        start_time = datetime.fromisoformat(start_raw)
    except ValueError as e:
        raise ParseError(f"'startTime' is not an ISO-8601 timestamp: {start_raw!r}") from e

    provided_by = options.get("provided-by")
    if provided_by is not None and not isinstance(provided_by, str):
        raise ParseError("'options.provided-by' should be str")

    return StatusSnapshot(
        version=_require(doc, "version", str),
        go_os=_require(doc, "goOS", str),
        go_arch=_require(doc, "goArch", str),
        active_sessions=_require_count(doc, "numActiveSessions"),
        connections=_require_count(doc, "numConnections"),
        bytes_proxied=_require_count(doc, "bytesProxied"),
        kbps=_kbps(doc),
        uptime_seconds=_require_count(doc, "uptimeSeconds"),
        start_time=start_time,
        provided_by=provided_by or None,
        global_rate=_rate_limit(options, "global-rate"),
        per_session_rate=_rate_limit(options, "per-session-rate"),
    )


# ── Fetching ───────────────────────────────────────────────────────────────


def status_url(host: str, port: int) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"http://{host}:{port}/status"


def fetch_status(url: str, timeout: float) -> StatusSnapshot:
    """GET the status document, bounded by ``timeout`` seconds.

    Raises:
        TransportError: On connection failure, timeout or a non-2xx status.
        ParseError: If the body is not a valid status document.
    """
    try:
        response = requests.get(
            url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise TransportError(f"{url}: timed out after {timeout:g}s") from e
    except requests.exceptions.ConnectionError as e:
        raise TransportError(f"{url}: connection failed") from e
    except requests.exceptions.HTTPError as e:
        raise TransportError(f"{url}: HTTP {e.response.status_code}") from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"{url}: {e}") from e

    try:
        doc = response.json()
    except ValueError as e:
        raise ParseError(f"{url}: response is not JSON") from e
    return parse_status(doc)
