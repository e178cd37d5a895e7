from __future__ import annotations

import os
import threading
from typing import Optional

import psutil
from fastapi import FastAPI
from prometheus_client import Counter, Enum, Gauge
from prometheus_fastapi_instrumentator import Instrumentator


_PROCESS: Optional[psutil.Process] = None
_SAMPLER_THREAD: Optional[threading.Thread] = None
_STOP_EVENT: Optional[threading.Event] = None


BRIDGE_MESSAGES = Counter(
    "soundfly_bridge_messages_total",
    "Messages received from the injected page script",
    ["channel", "command", "ok"],
)
EXTRACTION_ATTEMPTS = Counter(
    "soundfly_extraction_attempts_total",
    "YouTube audio extraction attempts per service instance",
    ["strategy", "outcome"],
)
PLAYER_STATUS = Enum(
    "soundfly_player_status",
    "Current native player status",
    states=["stopped", "loading", "playing", "paused"],
)

GAUGE_PROC_CPU_PERCENT = Gauge(
    "process_cpu_percent",
    "Current process CPU utilization percent",
)
GAUGE_PROC_RSS_BYTES = Gauge(
    "process_memory_rss_bytes",
    "Current process Resident Set Size in bytes",
)
GAUGE_PROC_THREADS = Gauge(
    "process_thread_count",
    "Number of threads in the current process (engine event threads included)",
)


def record_bridge_message(channel: str, command: str, ok: bool) -> None:
    BRIDGE_MESSAGES.labels(channel=channel, command=command, ok=str(bool(ok)).lower()).inc()


def record_extraction(strategy: str, outcome: str) -> None:
    EXTRACTION_ATTEMPTS.labels(strategy=strategy, outcome=outcome).inc()


def record_player_status(status: str) -> None:
    PLAYER_STATUS.state(status)


def _sample_metrics_loop(poll_seconds: float = 2.0) -> None:
    assert _PROCESS is not None
    # Prime cpu_percent to avoid first-call 0.0
    _ = _PROCESS.cpu_percent(interval=None)
    while _STOP_EVENT is not None and not _STOP_EVENT.is_set():
        try:
            GAUGE_PROC_CPU_PERCENT.set(_PROCESS.cpu_percent(interval=None))
            GAUGE_PROC_RSS_BYTES.set(_PROCESS.memory_info().rss)
            GAUGE_PROC_THREADS.set(_PROCESS.num_threads())
        except Exception:
            # next loop will retry
            pass
        _STOP_EVENT.wait(poll_seconds)


def setup_metrics(app: FastAPI) -> None:
    """Attach Prometheus instrumentation and the process sampler.

    - Exposes /metrics with default FastAPI request metrics
    - Samples process CPU/memory/threads via psutil periodically
    """

    instrumentator = Instrumentator().instrument(app)
    instrumentator.expose(app, include_in_schema=False)

    global _PROCESS, _STOP_EVENT, _SAMPLER_THREAD
    _PROCESS = psutil.Process(os.getpid())
    _STOP_EVENT = threading.Event()
    _SAMPLER_THREAD = threading.Thread(
        target=_sample_metrics_loop, name="metrics-sampler", args=(2.0,), daemon=True
    )

    @app.on_event("startup")
    async def _start_sampler() -> None:
        if _SAMPLER_THREAD is not None and not _SAMPLER_THREAD.is_alive():
            _SAMPLER_THREAD.start()

    @app.on_event("shutdown")
    async def _stop_sampler() -> None:
        if _STOP_EVENT is not None:
            _STOP_EVENT.set()
        if _SAMPLER_THREAD is not None and _SAMPLER_THREAD.is_alive():
            _SAMPLER_THREAD.join(timeout=2.0)
