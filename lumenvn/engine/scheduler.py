"""
Cooperative scheduler with a virtual clock.

All playback progression runs on one thread:
- Timer: a callback due at ``now_ms + delay``
- Task: a generator that yields millisecond delays between its steps

Nothing moves unless ``advance()`` is called. The pygame front end feeds it
``clock.tick()`` each frame; tests advance time explicitly.
"""
from __future__ import annotations

import heapq
import itertools
import logging
from typing import Callable, Generator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# A task body: yields delays in ms, returns when done.
TaskBody = Generator[int, None, None]


class Timer:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Task:
    """A running generator. Finishes when the generator returns or raises."""

    def __init__(self, scheduler: "Scheduler", body: TaskBody, name: str = "") -> None:
        self._scheduler = scheduler
        self._body = body
        self._timer: Optional[Timer] = None
        self._callbacks: List[Callable[["Task"], None]] = []
        self.name = name
        self.done = False
        self.cancelled = False
        self.error: Optional[BaseException] = None

    def add_done_callback(self, fn: Callable[["Task"], None]) -> None:
        if self.done:
            fn(self)
        else:
            self._callbacks.append(fn)

    def cancel(self) -> None:
        """Stop the task; its ``finally`` blocks run immediately."""
        if self.done:
            return
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        try:
            self._body.close()
        except Exception as e:
            logger.error(f"Task {self.name or '<anon>'} failed while closing: {e}")
        self._finish()

    def _step(self) -> None:
        self._timer = None
        if self.done:
            return
        try:
            delay = next(self._body)
        except StopIteration:
            self._finish()
            return
        except Exception as e:
            self.error = e
            logger.exception(f"Task {self.name or '<anon>'} crashed")
            self._finish()
            return
        self._timer = self._scheduler.call_later(max(0, int(delay or 0)), self._step)

    def _finish(self) -> None:
        self.done = True
        callbacks, self._callbacks = self._callbacks, []
        for fn in callbacks:
            try:
                fn(self)
            except Exception as e:
                logger.error(f"Task done callback failed: {e}", exc_info=True)


class Scheduler:
    def __init__(self) -> None:
        self._now = 0
        self._heap: List[Tuple[int, int, Timer]] = []
        self._seq = itertools.count()

    @property
    def now_ms(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Timer:
        timer = Timer(self._now + max(0, int(delay_ms)), callback)
        heapq.heappush(self._heap, (timer.due, next(self._seq), timer))
        return timer

    def call_soon(self, callback: Callable[[], None]) -> Timer:
        return self.call_later(0, callback)

    def spawn(self, body: TaskBody, name: str = "") -> Task:
        """Start a task. It runs synchronously up to its first yield."""
        task = Task(self, body, name)
        task._step()
        return task

    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    def next_due(self) -> Optional[int]:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def advance(self, ms: int) -> None:
        """Move the clock forward by ``ms``, firing due timers in order."""
        target = self._now + max(0, int(ms))
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            _, _, timer = heapq.heappop(self._heap)
            self._now = max(self._now, timer.due)
            try:
                timer.callback()
            except Exception:
                logger.exception("Scheduled callback crashed")
        self._now = target

    def run_until_idle(self, limit_ms: int = 10 * 60 * 1000) -> int:
        """Fire every timer until none remain (or ``limit_ms`` passes). Returns ms elapsed."""
        start = self._now
        while True:
            due = self.next_due()
            if due is None or due - start > limit_ms:
                break
            self.advance(due - self._now)
        return self._now - start

    def clear(self) -> None:
        for _, _, timer in self._heap:
            timer.cancel()
        self._heap.clear()
