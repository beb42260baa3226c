"""CloudWatch custom metrics for the assistant's backing services.

Every call the assistant makes to a backing service (the LLM, the Chroma
vector store, the SQL document store) is timed and counted so that slow or
failing dependencies show up on a dashboard.

Design
------
* Data points are buffered in memory under a lock.
* A daemon thread flushes the buffer to CloudWatch every
  ``FLUSH_INTERVAL_SECONDS`` when ``METRICS_ENABLED=true``; otherwise the
  points are only logged at DEBUG level and dropped on flush.
* ``track()`` wraps a call site so callers never hand-roll timing code.

Usage
-----
>>> from minato.services.metrics import metrics
>>> with metrics.track("chroma", "query"):
...     collection.query(query_texts=["lunch"], n_results=3)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "Minato"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch limit per PutMetricData call


class MetricsClient:
    """Batched CloudWatch publisher for backing-service call metrics."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    @contextmanager
    def track(self, service: str, operation: str) -> Iterator[None]:
        """Time the wrapped block and record it as a success or failure.

        Exceptions are recorded with their class name and re-raised.
        """
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            self.record_failure(
                service, operation,
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            raise
        elapsed = (time.perf_counter() - t0) * 1000
        self.record_success(service, operation, latency_ms=elapsed)

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful backing-service call."""
        self._append_point("Backend/Calls", 1, "Count", service, Status="success")
        self._append_point(
            "Backend/Latency", latency_ms, "Milliseconds", service, Operation=operation,
        )
        logger.debug("Metric: %s.%s ok in %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed backing-service call."""
        self._append_point("Backend/Calls", 1, "Count", service, Status="failure")
        self._append_point("Backend/Errors", 1, "Count", service, ErrorType=error_type)
        if latency_ms > 0:
            self._append_point(
                "Backend/Latency", latency_ms, "Milliseconds", service, Operation=operation,
            )
        logger.debug(
            "Metric: %s.%s failed (%s) after %.1fms",
            service, operation, error_type, latency_ms,
        )

    def flush(self) -> int:
        """Send buffered data points to CloudWatch.  Returns the count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (disabled): %d points dropped", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ──────────────────────────────────────────────────────

    def _append_point(
        self,
        name: str,
        value: float,
        unit: str,
        service: str,
        **dimensions: str,
    ) -> None:
        dims = [{"Name": "Service", "Value": service}]
        dims.extend({"Name": k, "Value": v} for k, v in dimensions.items())
        point = {
            "MetricName": name,
            "Dimensions": dims,
            "Timestamp": datetime.now(UTC),
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(point)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
