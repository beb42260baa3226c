"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from minato.services.metrics import MetricsClient


def _make_client(*, enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
        with patch.object(MetricsClient, "_start_flush_thread"):
            return MetricsClient()


def _names(client: MetricsClient) -> set[str]:
    return {m["MetricName"] for m in client._buffer}


class TestMetricsRecording:
    def test_record_success_buffers_call_and_latency(self):
        client = _make_client()
        client.record_success("chroma", "query", latency_ms=12.5)
        assert _names(client) == {"Backend/Calls", "Backend/Latency"}

    def test_record_failure_without_latency(self):
        client = _make_client()
        client.record_failure("llm", "complete", error_type="APITimeoutError")
        assert _names(client) == {"Backend/Calls", "Backend/Errors"}

    def test_record_failure_with_latency(self):
        client = _make_client()
        client.record_failure("documents", "insert_event", error_type="IntegrityError", latency_ms=8.0)
        assert len(client._buffer) == 3

    def test_failure_dimensions_include_error_type(self):
        client = _make_client()
        client.record_failure("llm", "complete", error_type="RateLimitError")
        error_metric = next(m for m in client._buffer if m["MetricName"] == "Backend/Errors")
        dims = {d["Name"]: d["Value"] for d in error_metric["Dimensions"]}
        assert dims == {"Service": "llm", "ErrorType": "RateLimitError"}


class TestTrack:
    def test_track_records_success(self):
        client = _make_client()
        with client.track("chroma", "add"):
            pass
        calls = next(m for m in client._buffer if m["MetricName"] == "Backend/Calls")
        assert {"Name": "Status", "Value": "success"} in calls["Dimensions"]

    def test_track_records_failure_and_reraises(self):
        client = _make_client()
        with pytest.raises(TimeoutError):
            with client.track("llm", "complete"):
                raise TimeoutError("slow")
        errors = next(m for m in client._buffer if m["MetricName"] == "Backend/Errors")
        assert {"Name": "ErrorType", "Value": "TimeoutError"} in errors["Dimensions"]


class TestMetricsFlush:
    def test_flush_when_disabled_drops_points(self):
        client = _make_client()
        client.record_success("chroma", "query", latency_ms=1.0)
        assert client.flush() == 0
        assert client._buffer == []

    def test_flush_when_enabled_calls_put_metric_data(self):
        client = _make_client(enabled=True)
        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_success("documents", "list_events", latency_ms=3.0)
        sent = client.flush()

        assert sent == 2
        kwargs = mock_cw.put_metric_data.call_args.kwargs
        assert kwargs["Namespace"] == "Minato"
        assert len(kwargs["MetricData"]) == 2

    def test_flush_survives_cloudwatch_errors(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")
        client.record_success("llm", "complete", latency_ms=1.0)
        assert client.flush() == 0

    def test_flush_empty_buffer_returns_zero(self):
        assert _make_client(enabled=True).flush() == 0
