"""Paced, push-based replay of an environment."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from kfstream.data.records import make_record

from .base import Env

logger = logging.getLogger(__name__)

Record = Dict[str, float]
RecordCallback = Callable[[Record], None]

# Roughly 24 frames per second, enough to look live in a plot.
DEFAULT_INTERVAL = 0.041


class Subscription:
    """Handle returned by ``subscribe``; cancelling it is always safe."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Optional[Callable[[], None]] = cancel
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def unsubscribe(self) -> None:
        with self._lock:
            cancel, self._cancel = self._cancel, None
        if cancel is not None:
            cancel()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:  # type: ignore[no-untyped-def]
        self.unsubscribe()


class LiveFeed:
    """Push one observation record per advance to every subscriber.

    ``start`` runs the environment on a worker thread, one advance every
    ``interval`` seconds. ``run`` replays synchronously without pacing. Both
    produce the same values since the environment alone decides them.
    """

    def __init__(
        self,
        env: Env,
        interval: float = DEFAULT_INTERVAL,
        max_steps: int | None = None,
        name: str = "y",
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be non-negative")
        if max_steps is not None and max_steps < 0:
            raise ValueError("max_steps must be non-negative")
        self.env = env
        self.interval = float(interval)
        self.max_steps = max_steps
        self.name = name
        self._subscribers: List[RecordCallback] = []
        self._subscribers_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self._pushed = 0

    @property
    def pushed(self) -> int:
        """Number of records delivered so far."""

        return self._pushed

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, callback: RecordCallback) -> Subscription:
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def _cancel() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return Subscription(_cancel)

    def _emit(self) -> Record:
        record = make_record(self.env.advance(), self.name)
        with self._subscribers_lock:
            callbacks = list(self._subscribers)
        for callback in callbacks:
            callback(record)
        self._pushed += 1
        return record

    def run(self, n: int) -> List[Record]:
        """Replay ``n`` steps synchronously and return the records."""

        if self.running:
            raise RuntimeError("Feed is already running on a worker thread")
        return [self._emit() for _ in range(int(n))]

    def _worker(self) -> None:
        try:
            while not self._stop_event.is_set():
                if self.max_steps is not None and self._pushed >= self.max_steps:
                    break
                self._emit()
                if self._stop_event.wait(self.interval):
                    break
        except Exception as exc:
            logger.exception("Live feed stopped after %d records", self._pushed)
            self._error = exc
        finally:
            self._stop_event.set()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Feed has already been started")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._worker, name="kfstream-feed", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Ask the worker to finish; safe to call any number of times."""

        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker and re-raise a subscriber failure, if any."""

        if self._thread is not None:
            self._thread.join(timeout)
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def __enter__(self) -> "LiveFeed":
        return self

    def __exit__(self, *exc_info) -> None:  # type: ignore[no-untyped-def]
        self.stop()
        if self._thread is not None:
            self._thread.join()


__all__ = ["DEFAULT_INTERVAL", "LiveFeed", "Record", "Subscription"]
