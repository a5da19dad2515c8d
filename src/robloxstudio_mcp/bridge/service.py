"""
Pending-request table shared by the MCP side and the polling Studio plugin.

The plugin cannot receive pushed work, so every tool call is parked here
until the plugin polls for it and posts a result back:

    submit()      -> park a request, hand back a Future
    peek_oldest() -> what /poll serves (non-destructive)
    complete()    -> /response with a result
    fail()        -> /response with an error
    sweep()       -> periodic expiry, alongside the per-request timers

Every settle path pops the entry under the lock before touching the Future,
so the first trigger wins and any later one is a no-op.
"""

from __future__ import annotations

import itertools
import threading
import time
import uuid
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..shared.errors import InvocationCancelled, InvocationTimeout, RemoteExecutionError
from ..shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_SWEEP_INTERVAL = 5.0


@dataclass
class PendingRequest:
    id: str
    endpoint: str
    payload: Any
    created_at: float
    sequence: int
    future: "Future[Any]" = field(repr=False, compare=False)
    timer: Optional[threading.Timer] = field(default=None, repr=False, compare=False)

    def to_message(self) -> Dict[str, Any]:
        return {
            "requestId": self.id,
            "request": {
                "endpoint": self.endpoint,
                "payload": self.payload,
                # older plugin builds read "data"
                "data": self.payload,
            },
        }


class BridgeService:
    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: Dict[str, PendingRequest] = {}
        self._sequence = itertools.count()
        self._closed = False
        self._sweeper: Optional[threading.Thread] = None
        self._sweeper_stop = threading.Event()

    def __len__(self) -> int:
        return self.pending_count

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, endpoint: str, payload: Any = None) -> "Future[Any]":
        future: "Future[Any]" = Future()
        with self._lock:
            if self._closed:
                future.set_exception(InvocationCancelled("Bridge is shut down"))
                return future
            request_id = str(uuid.uuid4())
            while request_id in self._pending:
                request_id = str(uuid.uuid4())
            request = PendingRequest(
                id=request_id,
                endpoint=endpoint,
                payload=payload if payload is not None else {},
                created_at=self._clock(),
                sequence=next(self._sequence),
                future=future,
            )
            timer = threading.Timer(self.timeout, self._expire, args=(request_id,))
            timer.daemon = True
            request.timer = timer
            self._pending[request_id] = request
            timer.start()

        future.add_done_callback(lambda f, rid=request_id: self._discard_if_cancelled(rid, f))
        logger.debug("Queued request %s for %s", request_id, endpoint)
        return future

    def peek_oldest(self) -> Optional[PendingRequest]:
        with self._lock:
            if not self._pending:
                return None
            return min(self._pending.values(), key=lambda r: (r.created_at, r.sequence))

    def list_pending(self) -> List[PendingRequest]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: (r.created_at, r.sequence))

    def complete(self, request_id: Any, result: Any) -> bool:
        request = self._take(request_id)
        if request is None:
            logger.debug("Ignoring result for unknown request %s", request_id)
            return False
        self._settle(request, result=result)
        logger.debug("Request %s completed", request_id)
        return True

    def fail(self, request_id: Any, error: Any) -> bool:
        request = self._take(request_id)
        if request is None:
            logger.debug("Ignoring error for unknown request %s", request_id)
            return False
        if not isinstance(error, BaseException):
            error = RemoteExecutionError.from_payload(error)
        self._settle(request, error=error)
        logger.debug("Request %s failed: %s", request_id, error)
        return True

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [r.id for r in self._pending.values() if now - r.created_at > self.timeout]
        return sum(1 for request_id in stale if self._expire(request_id))

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL) -> None:
        if self._sweeper is not None:
            return
        self._sweeper_stop.clear()
        thread = threading.Thread(
            target=self._sweep_loop,
            args=(interval,),
            name="bridge-sweeper",
            daemon=True,
        )
        self._sweeper = thread
        thread.start()

    def stop_sweeper(self) -> None:
        thread = self._sweeper
        if thread is None:
            return
        self._sweeper_stop.set()
        if thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._sweeper = None

    def close(self) -> None:
        """Cancel every outstanding request; later submissions fail immediately."""
        self.stop_sweeper()
        with self._lock:
            self._closed = True
            pending = list(self._pending.values())
            self._pending.clear()
        for request in pending:
            self._settle(request, error=InvocationCancelled("Bridge is shutting down"))
        if pending:
            logger.info("Cancelled %d pending request(s) on shutdown", len(pending))

    # -------------------------
    # Internal helpers
    # -------------------------

    def _take(self, request_id: Any) -> Optional[PendingRequest]:
        if not isinstance(request_id, str):
            return None
        with self._lock:
            return self._pending.pop(request_id, None)

    def _expire(self, request_id: str) -> bool:
        request = self._take(request_id)
        if request is None:
            return False
        logger.warning("Request %s for %s timed out after %.1fs", request_id, request.endpoint, self.timeout)
        self._settle(request, error=InvocationTimeout("Request timeout"))
        return True

    def _settle(
        self,
        request: PendingRequest,
        result: Any = None,
        error: Optional[BaseException] = None,
    ) -> None:
        if request.timer is not None:
            request.timer.cancel()
        try:
            if error is not None:
                request.future.set_exception(error)
            else:
                request.future.set_result(result)
        except InvalidStateError:
            # the caller cancelled its Future first
            logger.debug("Request %s was already cancelled by its caller", request.id)

    def _discard_if_cancelled(self, request_id: str, future: "Future[Any]") -> None:
        if not future.cancelled():
            return
        request = self._take(request_id)
        if request is not None and request.timer is not None:
            request.timer.cancel()
            logger.debug("Request %s cancelled by caller", request_id)

    def _sweep_loop(self, interval: float) -> None:
        while not self._sweeper_stop.wait(interval):
            try:
                expired = self.sweep()
            except Exception:  # noqa: BLE001
                logger.exception("Sweep of pending requests failed")
                continue
            if expired:
                logger.info("Sweep expired %d stale request(s)", expired)
