"""
Throttled Queue Module
======================

A FIFO admission queue that releases work in fixed interval windows.

At most ``max_per_interval`` executions are admitted per ``interval``
milliseconds. Admission is driven by a single self-correcting timer on the
running asyncio event loop, so all bookkeeping is single-threaded and needs
no locks. Work may ask to be retried later, or to pause the whole queue,
by raising :class:`RetryError`.
"""

import asyncio
import functools
import inspect
import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, NoReturn, Optional, Set, Union

from .exceptions import RetryError

logger = logging.getLogger(__name__)

DEFAULT_WAIT = 500
DEFAULT_RETRY_LIMIT = 30


# =============================================================================
# Attempt outcomes
# =============================================================================

@dataclass(frozen=True)
class Ok:
    """The work returned normally."""
    value: Any


@dataclass(frozen=True)
class Retry:
    """The work asked to be retried (optionally pausing the queue)."""
    error: RetryError


@dataclass(frozen=True)
class Fail:
    """The work raised; terminal for the execution."""
    error: Exception


Outcome = Union[Ok, Retry, Fail]


@dataclass
class ExecutionContext:
    """
    Passed to every invocation of queued work.

    Attributes:
        interval_start: Loop-clock timestamp (ms) of the window the attempt was admitted in
        state: Caller-owned state, the same object across every retry
        attempt: 1-based attempt number for this execution
    """
    interval_start: float
    state: Any
    attempt: int = 1

    def retry(self, after: Optional[float] = None) -> NoReturn:
        """Retry this execution after ``after`` ms (queue default if None)."""
        raise RetryError(retry_after=after)

    def pause_queue_and_retry(self, after: Optional[float] = None) -> NoReturn:
        """Stop admitting work for ``after`` ms, then retry this execution."""
        raise RetryError(retry_after=after, pause_queue=True)


@dataclass
class _Execution:
    work: Callable[[ExecutionContext], Any]
    state: Any
    future: asyncio.Future
    retries_left: int
    pauses_left: int
    attempt: int = 0


class ThrottledQueue:
    """
    Interval-windowed throttling queue for async (or sync) work.

    Args:
        max_per_interval: Maximum admissions per window (default: unbounded)
        interval: Window length in milliseconds, 0 = unbounded (default: 0)
        evenly_spaced: Spread admissions evenly across the window (default: False)
        max_retries: Plain retries allowed per execution (default: 30)
        max_retries_with_pauses: Pause-and-retries allowed per execution (default: 30)

    Example:
        ```python
        # At most 10 requests per second
        queue = ThrottledQueue(max_per_interval=10, interval=seconds(1))

        async def fetch(ctx):
            return await client.get(ctx.state["url"])

        results = await asyncio.gather(
            *[queue.enqueue(fetch, {"url": url}) for url in urls]
        )
        ```

    Note:
        Evenly spaced queues are normalized at construction time into
        ``max_per_interval=1`` and ``interval=ceil(interval / max_per_interval)``.
        An interval of 0 has no windowing at all, so every execution is
        admitted immediately unless the queue is paused.
    """

    def __init__(
        self,
        max_per_interval: float = math.inf,
        interval: float = 0,
        evenly_spaced: bool = False,
        max_retries: int = DEFAULT_RETRY_LIMIT,
        max_retries_with_pauses: int = DEFAULT_RETRY_LIMIT,
    ):
        if max_per_interval < 1:
            raise ValueError("max_per_interval must be a positive integer")
        if interval < 0:
            raise ValueError("interval cannot be negative")
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if max_retries_with_pauses < 0:
            raise ValueError("max_retries_with_pauses cannot be negative")

        if evenly_spaced:
            interval = math.ceil(interval / max_per_interval)
            max_per_interval = 1

        self._max_per_interval = max_per_interval
        self._interval = interval
        self._max_retries = max_retries
        self._max_retries_with_pauses = max_retries_with_pauses
        # Without a window there is nothing to count against.
        self._quota = max_per_interval if interval else math.inf

        self._pending: Deque[_Execution] = deque()
        self._window_start = -math.inf
        self._admitted_in_window = 0
        self._resume_at = -math.inf
        self._timer: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()

        self._total_admitted = 0
        self._total_completed = 0
        self._total_failed = 0
        self._total_cancelled = 0
        self._total_retries = 0
        self._total_pauses = 0

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def max_per_interval(self) -> float:
        """Maximum admissions per window (math.inf = unbounded)."""
        return self._max_per_interval

    @property
    def interval(self) -> float:
        """Window length in milliseconds (0 = unbounded)."""
        return self._interval

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def max_retries_with_pauses(self) -> int:
        return self._max_retries_with_pauses

    # =========================================================================
    # Runtime state
    # =========================================================================

    @property
    def pending_count(self) -> int:
        """Number of executions waiting for admission."""
        return len(self._pending)

    @property
    def admitted_in_window(self) -> float:
        """Admissions counted against the current window."""
        return self._admitted_in_window

    @property
    def is_paused(self) -> bool:
        """Whether a pause requested by some execution is still in effect."""
        if self._loop is None or self._timer is None:
            return False
        return self._now() < self._resume_at

    @property
    def stats(self) -> Dict[str, Any]:
        """
        Get queue statistics.

        Returns:
            Dict with configuration, pending/running counts and lifetime
            totals of admissions, completions, failures, executions whose
            caller cancelled, retries and pauses.
        """
        return {
            "max_per_interval": self._max_per_interval,
            "interval": self._interval,
            "pending": len(self._pending),
            "running": len(self._tasks),
            "admitted_in_window": self._admitted_in_window,
            "total_admitted": self._total_admitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
            "total_cancelled": self._total_cancelled,
            "total_retries": self._total_retries,
            "total_pauses": self._total_pauses,
        }

    def __len__(self) -> int:
        return len(self._pending)

    def __repr__(self) -> str:
        return (
            f"ThrottledQueue(max_per_interval={self._max_per_interval}, "
            f"interval={self._interval}, "
            f"max_retries={self._max_retries}, "
            f"max_retries_with_pauses={self._max_retries_with_pauses})"
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def enqueue(
        self,
        work: Callable[[ExecutionContext], Any],
        state: Any = None,
    ) -> asyncio.Future:
        """
        Queue ``work`` and return a future for its result.

        ``work`` receives an :class:`ExecutionContext` and may return a value
        or an awaitable. Raising :class:`RetryError` re-enqueues the same
        execution (with the same ``state``) instead of failing the future,
        until the execution's retry budget is exhausted.

        Args:
            work: Callable taking an ExecutionContext
            state: Mutable object shared by all attempts of this execution
                (default: a new empty dict)

        Returns:
            Future resolved with the work's result or failed with its error

        Raises:
            RuntimeError: If called without a running event loop
        """
        if not callable(work):
            raise TypeError(f"work must be callable, got {type(work).__name__}")

        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._bind(loop)
        execution = _Execution(
            work=work,
            state={} if state is None else state,
            future=self._loop.create_future(),
            retries_left=self._max_retries,
            pauses_left=self._max_retries_with_pauses,
        )
        self._admit(execution)
        return execution.future

    __call__ = enqueue

    def wrap(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """
        Decorate ``func`` so every call is admitted through this queue.

        Example:
            ```python
            @queue.wrap
            async def get_user(user_id):
                return await api.get(f"/users/{user_id}")

            user = await get_user(42)  # throttled
            ```
        """
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await self.enqueue(lambda context: func(*args, **kwargs))

        return wrapper

    # =========================================================================
    # Admission
    # =========================================================================

    def _now(self) -> float:
        return self._loop.time() * 1000

    def _bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach to ``loop``, discarding anything left over from a previous one."""
        if self._loop is not None:
            if self._pending:
                logger.warning(
                    f"Event loop changed, dropping {len(self._pending)} "
                    f"execution(s) queued on the previous loop"
                )
            if self._timer is not None:
                self._timer.cancel()
            self._pending.clear()
            self._tasks.clear()

        # Window timestamps are on the old loop's clock.
        self._timer = None
        self._window_start = -math.inf
        self._admitted_in_window = 0
        self._resume_at = -math.inf
        self._loop = loop

    def _admit(self, execution: _Execution) -> None:
        now = self._now()

        # An idle queue starts a fresh window instead of waiting on a stale one.
        if self._timer is None and now - self._window_start > self._interval:
            self._window_start = now
            self._admitted_in_window = 0

        if self._admitted_in_window < self._quota:
            self._admitted_in_window += 1
            self._start(execution)
            return

        self._pending.append(execution)
        logger.debug(f"Window full, {len(self._pending)} execution(s) pending")
        if self._timer is None:
            self._schedule(self._window_start + self._interval - now)

    def _schedule(self, delay: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(max(delay, 0) / 1000, self._dequeue)

    def _dequeue(self) -> None:
        self._timer = None
        now = self._now()
        window_end = max(self._window_start + self._interval, self._resume_at)

        # Timers may fire early; never admit before the window is over.
        if now < window_end:
            self._schedule(window_end - now)
            return

        self._window_start = now
        self._admitted_in_window = 0
        while self._pending and self._admitted_in_window < self._quota:
            self._admitted_in_window += 1
            self._start(self._pending.popleft())

        logger.debug(
            f"New window: admitted {self._admitted_in_window}, "
            f"{len(self._pending)} still pending"
        )
        if self._pending:
            self._schedule(self._interval)

    def _start(self, execution: _Execution) -> None:
        execution.attempt += 1
        self._total_admitted += 1
        context = ExecutionContext(
            interval_start=self._window_start,
            state=execution.state,
            attempt=execution.attempt,
        )
        task = self._loop.create_task(self._run(execution, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # =========================================================================
    # Execution state machine
    # =========================================================================

    async def _run(self, execution: _Execution, context: ExecutionContext) -> None:
        try:
            outcome = await self._invoke(execution.work, context)
            if isinstance(outcome, Retry):
                await self._retry(execution, outcome.error)
            else:
                self._settle(execution, outcome)
        except asyncio.CancelledError:
            execution.future.cancel()
            raise

    @staticmethod
    async def _invoke(
        work: Callable[[ExecutionContext], Any],
        context: ExecutionContext,
    ) -> Outcome:
        try:
            result = work(context)
            if inspect.isawaitable(result):
                result = await result
        except RetryError as exc:
            return Retry(exc)
        except Exception as exc:
            return Fail(exc)
        return Ok(result)

    async def _retry(self, execution: _Execution, error: RetryError) -> None:
        # Nobody is waiting for the result; a pause would hold everyone else.
        if execution.future.cancelled():
            self._settle(execution, Fail(error))
            return

        delay = self._retry_delay(error)

        if error.pause_queue:
            if execution.pauses_left <= 0:
                logger.warning(
                    f"Pause-and-retry limit ({self._max_retries_with_pauses}) "
                    f"reached after {execution.attempt} attempts"
                )
                self._settle(execution, Fail(error))
                return
            execution.pauses_left -= 1
            self._pause(delay)
        else:
            if execution.retries_left <= 0:
                logger.warning(
                    f"Retry limit ({self._max_retries}) reached "
                    f"after {execution.attempt} attempts"
                )
                self._settle(execution, Fail(error))
                return
            execution.retries_left -= 1
            self._total_retries += 1
            logger.debug(f"Retrying execution in {delay}ms (attempt {execution.attempt})")
            await asyncio.sleep(delay / 1000)
            if execution.future.cancelled():
                self._settle(execution, Fail(error))
                return

        self._admit(execution)

    def _retry_delay(self, error: RetryError) -> float:
        if error.retry_after is not None:
            return error.retry_after
        return self._interval or DEFAULT_WAIT

    def _pause(self, delay: float) -> None:
        """Saturate the current window and hold all admissions for ``delay`` ms."""
        self._total_pauses += 1
        self._admitted_in_window = self._quota
        self._resume_at = self._now() + delay
        self._schedule(delay)
        logger.info(f"Queue paused for {delay}ms, {len(self._pending)} pending")

    def _settle(self, execution: _Execution, outcome: Outcome) -> None:
        future = execution.future
        if future.done():
            self._total_cancelled += 1
            logger.debug("Caller cancelled its future, discarding the outcome")
            return

        if isinstance(outcome, Ok):
            self._total_completed += 1
            future.set_result(outcome.value)
        else:
            self._total_failed += 1
            future.set_exception(outcome.error)
