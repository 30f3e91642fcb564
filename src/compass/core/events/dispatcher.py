"""
Single consumer execution context for all state mutation.

Platform callbacks arrive on a background thread. Every state machine and
the orchestrator snapshot are only touched from the dispatcher, so the
handoff through ``post`` is the one synchronization point.

Two implementations share the same surface:
- ThreadedDispatcher: worker thread draining a FIFO queue (runtime)
- ManualDispatcher: runs work inline with a virtual clock (tests, replay)

Usage:
    dispatcher = ThreadedDispatcher()
    dispatcher.start()
    dispatcher.post(state_machine.start)
    handle = dispatcher.call_later(2.0, check_staleness)
    handle.cancel()
    dispatcher.stop()
"""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import threading
import time
from typing import Any, Callable, List, Optional, Tuple

from compass.utils.config_sections import DispatcherConfig, load_dispatcher_config

log = logging.getLogger("compass.dispatcher")


class DelayedCall:
    """Cancellable handle returned by ``call_later``."""

    def __init__(self, when: float, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        self.when = when
        self.fn = fn
        self.args = args
        self.cancelled = False
        self._timer: Optional[threading.Timer] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()


class Dispatcher:
    """Interface for the consumer context."""

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        raise NotImplementedError

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> DelayedCall:
        raise NotImplementedError

    def now(self) -> float:
        """Wall-clock seconds as seen by this context."""
        return time.time()

    def _run_callback(self, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        try:
            fn(*args)
        except Exception:
            log.exception("Dispatched callback %r failed", fn)


class ThreadedDispatcher(Dispatcher):
    """FIFO worker thread. Callbacks run one at a time in submission order."""

    def __init__(self, config: Optional[DispatcherConfig] = None, name: str = "CompassDispatcher") -> None:
        self.config = config or load_dispatcher_config()
        self.name = name
        self._queue: "queue.Queue[Optional[Tuple[Callable[..., Any], Tuple[Any, ...]]]]" = queue.Queue(
            maxsize=self.config.queue_maxsize
        )
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._timers: List[DelayedCall] = []
        self._timers_lock = threading.Lock()
        self.callbacks_dropped = 0

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """
        Reject new work, then let the worker finish everything already queued.

        Callbacks posted before ``stop`` still run, in order, ahead of the
        shutdown sentinel.
        """
        if not self._running:
            return
        self._running = False
        with self._timers_lock:
            timers, self._timers = self._timers, []
        for handle in timers:
            handle.cancel()
        try:
            self._queue.put(None, timeout=self.config.join_timeout)
        except queue.Full:
            log.warning("Dispatcher queue full, worker will not see the shutdown sentinel")
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.config.join_timeout)

    # ------------------------------------------------------------------
    # submission
    # ------------------------------------------------------------------

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        if not self._running:
            log.debug("Dispatcher stopped, dropping %r", fn)
            self.callbacks_dropped += 1
            return
        try:
            self._queue.put_nowait((fn, args))
        except queue.Full:
            self.callbacks_dropped += 1
            log.warning("Dispatcher queue full, dropping %r", fn)

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> DelayedCall:
        handle = DelayedCall(self.now() + delay, fn, args)

        def fire() -> None:
            with self._timers_lock:
                if handle in self._timers:
                    self._timers.remove(handle)
            if not handle.cancelled:
                self.post(self._fire_delayed, handle)

        timer = threading.Timer(max(0.0, delay), fire)
        timer.daemon = True
        handle._timer = timer
        with self._timers_lock:
            self._timers.append(handle)
        timer.start()
        return handle

    def _fire_delayed(self, handle: DelayedCall) -> None:
        # Cancelled between the timer thread and the queue
        if not handle.cancelled:
            handle.fn(*handle.args)

    # ------------------------------------------------------------------
    # worker
    # ------------------------------------------------------------------

    def _run(self) -> None:
        # Drain until the sentinel; stop() only closes the door to new work
        while True:
            try:
                item = self._queue.get(timeout=0.5)
            except queue.Empty:
                if not self._running and self._queue.empty():
                    break
                continue
            if item is None:
                break
            fn, args = item
            self._run_callback(fn, args)


class ManualDispatcher(Dispatcher):
    """
    Inline dispatcher with a virtual clock.

    ``post`` runs the callback immediately. Delayed calls wait until
    ``advance`` moves the clock past their deadline.
    """

    def __init__(self, start_time: Optional[float] = None) -> None:
        self._clock = time.time() if start_time is None else start_time
        self._pending: List[Tuple[float, int, DelayedCall]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._clock

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        self._run_callback(fn, args)

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> DelayedCall:
        handle = DelayedCall(self._clock + max(0.0, delay), fn, args)
        heapq.heappush(self._pending, (handle.when, next(self._sequence), handle))
        return handle

    def advance(self, seconds: float) -> int:
        """
        Move the virtual clock forward, firing every due delayed call in order.

        Returns:
            int: Number of delayed calls that ran
        """
        target = self._clock + seconds
        fired = 0
        while self._pending and self._pending[0][0] <= target:
            when, _order, handle = heapq.heappop(self._pending)
            self._clock = max(self._clock, when)
            if handle.cancelled:
                continue
            self._run_callback(handle.fn, handle.args)
            fired += 1
        self._clock = target
        return fired

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, handle in self._pending if not handle.cancelled)
