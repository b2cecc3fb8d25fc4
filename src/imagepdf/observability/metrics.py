"""Metrics hook protocol and no-op default implementation.

imagepdf emits counters, timings and gauges at the pipeline's key points.
By default a :class:`NoopMetricsHook` is used so there is zero overhead;
pass any object satisfying :class:`MetricsHook` as ``ImagePdfConfig.metrics``
to route data points to StatsD, Prometheus, or another backend.

Emitted metric names:

* ``imagepdf.images_normalized_total``  -- counter
* ``imagepdf.normalize_duration_ms``    -- timing
* ``imagepdf.pages_embedded_total``     -- counter
* ``imagepdf.document_bytes``           -- gauge
* ``imagepdf.chunks_sent_total``        -- counter
* ``imagepdf.upload_success_total``     -- counter
* ``imagepdf.upload_failure_total``     -- counter
* ``imagepdf.requests_total``           -- counter
* ``imagepdf.request_duration_ms``      -- timing
* ``imagepdf.retries_total``            -- counter
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(metrics: Any | None) -> Any:
    """Return *metrics*, or a :class:`NoopMetricsHook` when it is ``None``."""
    return metrics if metrics is not None else NoopMetricsHook()
