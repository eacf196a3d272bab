"""Structured logging and in-process counters.

Every log line is one JSON object. The request id set by the HTTP
middleware and the order, channel and connection context passed to
``log_event`` ride along as top-level keys so a single order can be
followed from checkout through every tracking push.
"""

import json
import logging
import threading
import time
from collections import defaultdict, deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

LOGGER_NAME = "uthraa.storefront"
CONTEXT_FIELDS = ("request_id", "order_id", "channel", "connection_id")
MAX_TIMING_SAMPLES = 1000


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if name == "request_id" and value is None:
                value = _request_id_ctx.get()
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())


@dataclass
class MetricsSnapshot:
    counters: dict[str, int]
    timings: dict[str, dict[str, float]]


class MetricsStore:
    """Thread-safe counters and recent timing samples.

    Sync endpoints run in the threadpool while tracking pushes run on the
    event loop, so updates go through a lock. Only the most recent
    ``MAX_TIMING_SAMPLES`` observations per timing are kept.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = defaultdict(int)
        self._timings: dict[str, deque[float]] = defaultdict(
            lambda: deque(maxlen=MAX_TIMING_SAMPLES)
        )

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def observe(self, name: str, value_s: float) -> None:
        with self._lock:
            self._timings[name].append(value_s)

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            counters = dict(self._counters)
            samples = {key: list(values) for key, values in self._timings.items() if values}

        timings: dict[str, dict[str, float]] = {}
        for key, values in samples.items():
            ordered = sorted(values)
            timings[key] = {
                "count": len(ordered),
                "avg_s": sum(ordered) / len(ordered),
                "p95_s": ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))],
                "max_s": ordered[-1],
            }
        return MetricsSnapshot(counters=counters, timings=timings)


metrics_store = MetricsStore()


def set_request_id(request_id: str | None) -> None:
    _request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


def log_event(
    message: str,
    *,
    order_id: str | None = None,
    channel: str | None = None,
    connection_id: str | None = None,
    level: int = logging.INFO,
) -> None:
    logging.getLogger(LOGGER_NAME).log(
        level,
        message,
        extra={
            "request_id": get_request_id(),
            "order_id": order_id,
            "channel": channel,
            "connection_id": connection_id,
        },
    )


@contextmanager
def observe_timing(metric_name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        metrics_store.observe(metric_name, time.perf_counter() - start)
