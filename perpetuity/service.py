"""
Background simulation service for Perpetuity.

Purpose
-------
Runs legacy analyses and success-rate computations off the caller's thread.
A `SimulationService` owns one worker thread and a mailbox queue; callers
submit typed requests and get a `concurrent.futures.Future` back.

Protocol
--------
Requests (closed set)      Responses (closed set)
- LegacyRequest            - LegacyComplete
- AggregateRequest         - AggregateComplete
                           - Progress (one per finished percentile run)
                           - SimulationFailed

Every request carries a caller-chosen `request_id`. Ids must be unique among
in-flight requests, so a response can only ever reach the caller that asked.
Responses are also published to listeners registered with `add_listener`.

Lifecycle
---------
>>> with SimulationService() as service:
...     future = service.submit(LegacyRequest("run-1", analysis))
...     outcome = future.result(timeout=60)
>>> outcome.card_label
'Perpetual Legacy'

`stop()` fails every queued future with `ServiceStoppedError`; queued requests
are not run. A request already in progress is left to the worker, which
still resolves its future after `stop(timeout=...)` returns. Cancelling a
queued future skips its request.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from .aggregator import AggregateResult, aggregate_from_input
from .config import AggregateInput, AnalysisInput, AppSettings
from .exceptions import DuplicateRequestError, ServiceStoppedError
from .legacy import LegacyOutcome, analyze_legacy
from .simulation import ChunkedSimulator

__all__ = [
    "LegacyRequest",
    "AggregateRequest",
    "LegacyComplete",
    "AggregateComplete",
    "Progress",
    "SimulationFailed",
    "Request",
    "Response",
    "SimulationService",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LegacyRequest:
    """Run the full legacy analysis."""

    request_id: str
    analysis: AnalysisInput


@dataclass(frozen=True)
class AggregateRequest:
    """Compute the empirical success rate only."""

    request_id: str
    aggregate: AggregateInput


@dataclass(frozen=True)
class LegacyComplete:
    request_id: str
    result: LegacyOutcome


@dataclass(frozen=True)
class AggregateComplete:
    request_id: str
    result: AggregateResult


@dataclass(frozen=True)
class Progress:
    """A percentile run finished."""

    request_id: str
    stage: str
    completed: int
    total: int


@dataclass(frozen=True)
class SimulationFailed:
    request_id: str
    error: str


Request = Union[LegacyRequest, AggregateRequest]
Response = Union[LegacyComplete, AggregateComplete, Progress, SimulationFailed]
Listener = Callable[[Response], None]

_STOP = object()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class SimulationService:
    """
    Single-worker simulation service.

    Parameters
    ----------
    simulator : ChunkedSimulator, optional
        Shared by every request. Runs hold no state on the simulator, so
        sharing is safe.
    settings : AppSettings, optional
        Supplies the worker's idle poll interval.
    """

    def __init__(
        self,
        simulator: Optional[ChunkedSimulator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self.simulator = simulator or ChunkedSimulator()
        self.settings = settings or AppSettings()
        self._mailbox: "queue.Queue[Any]" = queue.Queue()
        self._pending: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._handlers: Dict[type, Callable[[Any], Any]] = {
            LegacyRequest: self._handle_legacy,
            AggregateRequest: self._handle_aggregate,
        }

    # -------------------- Lifecycle --------------------
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopping.is_set()

    def start(self) -> "SimulationService":
        """Start the worker thread (no-op when already running)."""
        if self.running:
            return self
        # Requests and the stop marker left over from the previous run.
        while True:
            try:
                self._mailbox.get_nowait()
            except queue.Empty:
                break
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._worker, name="perpetuity-simulation", daemon=True
        )
        self._thread.start()
        logger.info("Simulation service started")
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker and fail every queued future."""
        if self._thread is None:
            return
        with self._lock:
            self._stopping.set()
        self._mailbox.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

        failed = 0
        with self._lock:
            for request_id, future in list(self._pending.items()):
                # Running futures belong to the worker until it finishes them.
                if future.running():
                    continue
                del self._pending[request_id]
                if future.set_running_or_notify_cancel():
                    future.set_exception(
                        ServiceStoppedError(f"Service stopped before request {request_id!r} completed.")
                    )
                    failed += 1
        logger.info("Simulation service stopped (%d queued requests failed)", failed)

    def __enter__(self) -> "SimulationService":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -------------------- Public API --------------------
    def add_listener(self, listener: Listener) -> None:
        """Receive every response message published by the worker."""
        self._listeners.append(listener)

    def submit(self, request: Request) -> Future:
        """
        Queue *request* and return a future for its result.

        Raises
        ------
        ServiceStoppedError
            If the service is not running.
        DuplicateRequestError
            If a request with the same id is still in flight.
        TypeError
            If *request* is not a known request type.
        """
        if type(request) not in self._handlers:
            raise TypeError(f"Unsupported request type: {type(request).__name__}")
        future: Future = Future()
        with self._lock:
            if not self.running:
                raise ServiceStoppedError("Simulation service is not running; call start() first.")
            if request.request_id in self._pending:
                raise DuplicateRequestError(
                    f"Request id {request.request_id!r} is already in flight."
                )
            self._pending[request.request_id] = future
        self._mailbox.put(request)
        logger.debug("Queued %s %r", type(request).__name__, request.request_id)
        return future

    # -------------------- Worker --------------------
    def _worker(self) -> None:
        poll = self.settings.service_poll_seconds
        while not self._stopping.is_set():
            try:
                item = self._mailbox.get(timeout=poll)
            except queue.Empty:
                continue
            if item is _STOP:
                break
            self._process(item)

    def _process(self, request: Request) -> None:
        with self._lock:
            future = self._pending.get(request.request_id)
            if future is None:
                return
            if not future.set_running_or_notify_cancel():
                del self._pending[request.request_id]
                logger.debug("Skipping cancelled request %r", request.request_id)
                return

        try:
            response = self._handlers[type(request)](request)
        except Exception as exc:
            logger.exception("Request %r failed", request.request_id)
            self._finish(request.request_id)
            self._publish(SimulationFailed(request.request_id, str(exc)))
            future.set_exception(exc)
            return

        self._finish(request.request_id)
        self._publish(response)
        future.set_result(response.result)

    def _finish(self, request_id: str) -> None:
        with self._lock:
            self._pending.pop(request_id, None)

    def _publish(self, message: Response) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Listener failed on %s", type(message).__name__)

    # -------------------- Handlers --------------------
    def _handle_legacy(self, request: LegacyRequest) -> LegacyComplete:
        def on_progress(stage: str, completed: int, total: int) -> None:
            self._publish(Progress(request.request_id, stage, completed, total))

        result = analyze_legacy(request.analysis, self.simulator, on_progress=on_progress)
        return LegacyComplete(request.request_id, result)

    def _handle_aggregate(self, request: AggregateRequest) -> AggregateComplete:
        return AggregateComplete(request.request_id, aggregate_from_input(request.aggregate))
