"""Single-threaded task executor with preemptive priorities."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

_log = logging.getLogger(__name__)

Task = tuple[Callable[[Any], None], Any]


@dataclass
class _Lane:
    main: list[Task] = field(default_factory=list)
    # remainder of a batch that was interrupted by a higher priority
    aux: list[Task] = field(default_factory=list)


class PriorityExecutor:
    """Runs posted tasks on one worker thread, highest priority first.

    A batch of tasks at one priority is interrupted as soon as a task of a
    higher priority is posted; the rest of the batch resumes afterwards.
    """

    def __init__(self, priorities: int = 2) -> None:
        if priorities < 1:
            raise ValueError("at least one priority level is required")
        self._lanes = [_Lane() for _ in range(priorities)]
        self._cond = threading.Condition()
        self._preempt = threading.Event()
        self._executing = -1
        self._pending = 0
        self._stopping = False
        self._closed = False
        self._thread: threading.Thread | None = None

    @property
    def max_priority(self) -> int:
        return len(self._lanes) - 1

    def __enter__(self) -> PriorityExecutor:
        self.run()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def run(self) -> None:
        """Start the worker thread."""
        with self._cond:
            if self._thread is not None or self._closed:
                raise RuntimeError("executor already started or stopped")
            self._thread = threading.Thread(
                target=self._work, name="tinymqtt-executor", daemon=True
            )
        self._thread.start()

    def stop(self) -> None:
        """Finish all queued tasks, then end the worker thread."""
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._closed = True

    def post(self, routine: Callable[[Any], None], arg: Any, priority: int) -> None:
        """Queue ``routine(arg)`` at the given priority."""
        if not 0 <= priority < len(self._lanes):
            raise ValueError(f"priority {priority} out of range 0..{self.max_priority}")
        with self._cond:
            if self._closed:
                raise RuntimeError("executor is stopped")
            self._lanes[priority].main.append((routine, arg))
            self._pending += 1
            if self._executing < priority:
                self._preempt.set()
            self._cond.notify()

    def _next_batch(self) -> tuple[_Lane, list[Task]] | None:
        with self._cond:
            while self._pending == 0 and not self._stopping:
                self._cond.wait()
            if self._pending == 0:
                return None
            priority, lane = next(
                (p, lane)
                for p, lane in reversed(list(enumerate(self._lanes)))
                if lane.main or lane.aux
            )
            self._executing = priority
            self._preempt.clear()
            if lane.aux:
                batch, lane.aux = lane.aux, []
            else:
                batch, lane.main = lane.main, []
            self._pending -= len(batch)
            return lane, batch

    def _work(self) -> None:
        while (picked := self._next_batch()) is not None:
            lane, batch = picked
            for index, (routine, arg) in enumerate(batch):
                if self._preempt.is_set():
                    remaining = batch[index:]
                    with self._cond:
                        self._pending += len(remaining)
                        lane.aux = remaining
                    break
                try:
                    routine(arg)
                except Exception:
                    _log.exception("task %r failed", routine)
            with self._cond:
                self._executing = -1