"""Tests for relaytop.status."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from relaytop.status import (
    FetchError,
    ParseError,
    StatusSnapshot,
    TransportError,
    fetch_status,
    parse_status,
    status_url,
)

URL = "http://localhost:22070/status"


# ── parse_status ───────────────────────────────────────────────────────────


class TestParseStatus:
    def test_full_document(self, status_doc: dict) -> None:
        snap = parse_status(status_doc)
        assert isinstance(snap, StatusSnapshot)
        assert snap.version == "v1.27.0"
        assert snap.platform == "linux-amd64"
        assert snap.provided_by == "example.org"
        assert snap.active_sessions == 12
        assert snap.connections == 40
        assert snap.bytes_proxied == 5 * 1024**3
        assert snap.kbps == (400.0, 350.5, 300.0, 250.0, 200.0, 150.0)
        assert snap.sample == 400.0
        assert snap.uptime_seconds == 3 * 86400 + 4 * 3600 + 5 * 60
        assert snap.start_time == datetime(2026, 10, 16, 8, 0, 0, 123456, tzinfo=timezone.utc)

    def test_zero_rate_means_unlimited(self, status_doc: dict) -> None:
        snap = parse_status(status_doc)
        assert snap.global_rate is None
        assert snap.per_session_rate == 1048576

    def test_options_optional(self, status_doc: dict) -> None:
        del status_doc["options"]
        snap = parse_status(status_doc)
        assert snap.provided_by is None
        assert snap.global_rate is None
        assert snap.per_session_rate is None

    def test_empty_provider_is_none(self, status_doc: dict) -> None:
        status_doc["options"]["provided-by"] = ""
        assert parse_status(status_doc).provided_by is None

    def test_unparseable_kbps_entries_are_zero(self, status_doc: dict) -> None:
        status_doc["kbps10s1m5m15m30m60m"] = [None, "x", 12, -1]
        snap = parse_status(status_doc)
        assert snap.kbps == (0.0, 0.0, 12.0, 0.0, 0.0, 0.0)

    def test_missing_kbps_is_zero(self, status_doc: dict) -> None:
        del status_doc["kbps10s1m5m15m30m60m"]
        assert parse_status(status_doc).kbps == (0.0,) * 6

    def test_extra_kbps_entries_ignored(self, status_doc: dict) -> None:
        status_doc["kbps10s1m5m15m30m60m"] = [1, 2, 3, 4, 5, 6, 7]
        assert parse_status(status_doc).kbps == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)

    @pytest.mark.parametrize(
        "key",
        ["version", "goOS", "goArch", "numActiveSessions", "numConnections",
         "bytesProxied", "uptimeSeconds", "startTime"],
    )
    def test_missing_required_field(self, status_doc: dict, key: str) -> None:
        del status_doc[key]
        with pytest.raises(ParseError, match=key):
            parse_status(status_doc)

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("version", 3),
            ("numConnections", "40"),
            ("numActiveSessions", True),
            ("bytesProxied", -1),
            ("uptimeSeconds", float("nan")),
        ],
    )
    def test_bad_field_types(self, status_doc: dict, key: str, value: object) -> None:
        status_doc[key] = value
        with pytest.raises(ParseError):
            parse_status(status_doc)

    def test_bad_timestamp(self, status_doc: dict) -> None:
        status_doc["startTime"] = "yesterday"
        with pytest.raises(ParseError, match="startTime"):
            parse_status(status_doc)

    def test_bad_options(self, status_doc: dict) -> None:
        status_doc["options"] = "fast"
        with pytest.raises(ParseError):
            parse_status(status_doc)

    def test_bad_rate_limit(self, status_doc: dict) -> None:
        status_doc["options"]["global-rate"] = "lots"
        with pytest.raises(ParseError):
            parse_status(status_doc)

    @pytest.mark.parametrize("doc", [[], "status", None, 42])
    def test_not_an_object(self, doc: object) -> None:
        with pytest.raises(ParseError):
            parse_status(doc)

    def test_parse_error_is_fetch_error(self) -> None:
        assert issubclass(ParseError, FetchError)
        assert issubclass(TransportError, FetchError)


# ── status_url ─────────────────────────────────────────────────────────────


def test_status_url() -> None:
    assert status_url("localhost", 22070) == URL


def test_status_url_ipv6() -> None:
    assert status_url("::1", 22070) == "http://[::1]:22070/status"
    assert status_url("[::1]", 22070) == "http://[::1]:22070/status"


# ── fetch_status (mocked) ──────────────────────────────────────────────────


def _response(body: object = None, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status} error", response=resp
        )
    return resp


class TestFetchStatus:
    @patch("relaytop.status.requests.get")
    def test_success(self, mock_get: MagicMock, status_doc: dict) -> None:
        mock_get.return_value = _response(status_doc)
        snap = fetch_status(URL, 10.0)
        assert snap.connections == 40
        args, kwargs = mock_get.call_args
        assert args == (URL,)
        assert kwargs["timeout"] == 10.0

    @patch("relaytop.status.requests.get")
    def test_timeout(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = requests.exceptions.ReadTimeout("slow")
        with pytest.raises(TransportError, match="timed out after 10s"):
            fetch_status(URL, 10.0)

    @patch("relaytop.status.requests.get")
    def test_connection_refused(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(TransportError, match="connection failed"):
            fetch_status(URL, 10.0)

    @patch("relaytop.status.requests.get")
    def test_http_error(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(status=503)
        with pytest.raises(TransportError, match="HTTP 503"):
            fetch_status(URL, 10.0)

    @patch("relaytop.status.requests.get")
    def test_other_request_error(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = requests.exceptions.TooManyRedirects("loop")
        with pytest.raises(TransportError):
            fetch_status(URL, 10.0)

    @patch("relaytop.status.requests.get")
    def test_body_not_json(self, mock_get: MagicMock) -> None:
        resp = _response()
        resp.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = resp
        with pytest.raises(ParseError, match="not JSON"):
            fetch_status(URL, 10.0)

    @patch("relaytop.status.requests.get")
    def test_body_wrong_shape(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(["not", "a", "status"])
        with pytest.raises(ParseError):
            fetch_status(URL, 10.0)
