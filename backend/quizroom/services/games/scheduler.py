import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, List, Optional, Set, Tuple


@dataclass
class ScheduledCall:
    key: Tuple
    delay: float
    callback: Callable
    args: Tuple[Any, ...]


class TaskScheduler:
    """Fire-and-forget delayed callbacks for room timers.

    - Runs each call as a Socket.IO background task that sleeps, then fires
    - Ensures a single pending timer per key, e.g. (room_code, 'deadline', index)
    - When disabled (tests), records calls in ``pending`` instead; fire them
      with ``run_pending``

    Nothing is cancellable. Callbacks re-check room state when they fire.
    """

    def __init__(self, socketio=None, enabled: bool = True, logger: Optional[logging.Logger] = None,
                 heartbeat_sec: int = 0):
        self._socketio = socketio
        self.enabled = enabled and socketio is not None
        self.logger = logger or logging.getLogger(__name__)
        self.heartbeat_sec = heartbeat_sec
        self.pending: List[ScheduledCall] = []
        self._scheduled_keys: Set[Hashable] = set()
        self._lock = threading.Lock()

    def call_later(self, delay: float, callback: Callable, *args, key: Tuple = ()) -> bool:
        """Schedule ``callback(*args)`` after ``delay`` seconds; False if ``key`` is already pending."""
        with self._lock:
            if key and key in self._scheduled_keys:
                self.logger.info(f"[timer-skip] key={key} already scheduled")
                return False
            if key:
                self._scheduled_keys.add(key)

        self.logger.info(f"[timer-set] key={key} delay={delay}s deadline={time.time() + delay:.3f}")
        call = ScheduledCall(key=key, delay=delay, callback=callback, args=args)
        if self.enabled:
            self._socketio.start_background_task(self._worker, call)
        else:
            self.pending.append(call)
        return True

    def run_pending(self, kind: Optional[str] = None) -> int:
        """Fire recorded calls, optionally only those whose key carries ``kind``."""
        due, kept = [], []
        for call in self.pending:
            (due if kind is None or kind in call.key else kept).append(call)
        self.pending = kept
        for call in due:
            self._fire(call)
        return len(due)

    def _worker(self, call: ScheduledCall) -> None:
        if self.heartbeat_sec > 0:
            slept = 0.0
            while slept < call.delay:
                step = min(self.heartbeat_sec, call.delay - slept)
                self._socketio.sleep(step)
                slept += step
                self.logger.info(f"[timer-heartbeat] key={call.key} remaining={max(0.0, call.delay - slept)}s")
        else:
            self._socketio.sleep(call.delay)
        self._fire(call)

    def _fire(self, call: ScheduledCall) -> None:
        with self._lock:
            self._scheduled_keys.discard(call.key)
        self.logger.info(f"[timer-fire] key={call.key}")
        try:
            call.callback(*call.args)
        except Exception:
            self.logger.exception(f"[timer-error] key={call.key}")
