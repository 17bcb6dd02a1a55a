"""Tests for the gateway health probe."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from gatewatch.prober import ProbeResult, ProbeStatus, probe

pytestmark = pytest.mark.unit

URL = "http://127.0.0.1:18789/health"


class TestProbe:
    @patch("gatewatch.prober.httpx.get")
    def test_200_is_healthy(self, mock_get: MagicMock) -> None:
        mock_get.return_value = MagicMock(status_code=200)
        result = probe(URL, timeout=5.0)
        assert result.status is ProbeStatus.HEALTHY
        assert result.healthy is True
        assert result.status_code == 200
        mock_get.assert_called_once_with(URL, timeout=5.0, follow_redirects=False)

    @patch("gatewatch.prober.httpx.get")
    def test_204_is_healthy(self, mock_get: MagicMock) -> None:
        mock_get.return_value = MagicMock(status_code=204)
        assert probe(URL).status is ProbeStatus.HEALTHY

    @pytest.mark.parametrize("code", [301, 404, 500, 503])
    @patch("gatewatch.prober.httpx.get")
    def test_other_status_is_unhealthy(self, mock_get: MagicMock, code: int) -> None:
        mock_get.return_value = MagicMock(status_code=code)
        result = probe(URL)
        assert result.status is ProbeStatus.UNHEALTHY
        assert result.status_code == code
        assert result.describe() == f"HTTP {code}"

    @patch("gatewatch.prober.httpx.get")
    def test_connection_refused_is_unreachable(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.ConnectError("Connection refused")
        result = probe(URL)
        assert result.status is ProbeStatus.UNREACHABLE
        assert result.status_code is None
        assert result.error == "connection refused"

    @patch("gatewatch.prober.httpx.get")
    def test_timeout_is_unreachable(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.ReadTimeout("timed out")
        result = probe(URL)
        assert result.status is ProbeStatus.UNREACHABLE
        assert result.describe() == "unreachable (timeout)"

    @patch("gatewatch.prober.httpx.get")
    def test_unexpected_exception_never_escapes(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = RuntimeError("boom")
        result = probe(URL)
        assert result.status is ProbeStatus.UNREACHABLE
        assert result.error == "boom"


def test_describe_unreachable_without_error() -> None:
    assert ProbeResult(ProbeStatus.UNREACHABLE).describe() == "unreachable"
