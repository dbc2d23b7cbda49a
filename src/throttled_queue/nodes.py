"""
Throttled Node Classes
======================

Drop-in replacement for PocketFlow's AsyncParallelBatchNode that admits
every batch item through a ThrottledQueue.

Classes:
    - ThrottledBatchNode: Interval-windowed batch node with optional
      pause-on-rate-limit behaviour
"""

import asyncio
import math
from typing import Any, List, Optional

from pocketflow import AsyncNode, BatchNode

from .exceptions import RetryError
from .throttler import ThrottledQueue


class ThrottledBatchNode(AsyncNode, BatchNode):
    """
    Parallel batch node whose items are released by a ThrottledQueue.

    Items run concurrently, but no more than ``max_per_interval`` of them are
    started per ``interval`` milliseconds. Results keep the input order.

    Configuration can be set via:
    1. Class attributes (for subclasses)
    2. Constructor keyword arguments (for instances)
    3. A shared ``queue`` instance (e.g. from QueueRegistry), which takes
       precedence over the class-level limits

    Class Attributes:
        max_per_interval (float): Items started per window (default: unbounded)
        interval (float): Window length in ms (default: 0 = unbounded)
        evenly_spaced (bool): Spread item starts across the window (default: False)
        pause_on_rate_limit (bool): Pause the whole queue when an item fails
            with a rate limit error, then retry it (default: False)
        rate_limit_pause (float | None): Pause length in ms (None = queue default)

    Example:
        ```python
        class TranslateNode(ThrottledBatchNode):
            max_per_interval = 60
            interval = minutes(1)
            pause_on_rate_limit = True

            async def prep_async(self, shared):
                return shared["texts"]

            async def exec_async(self, text):
                return await translate_api(text)

            async def post_async(self, shared, prep_res, exec_res_list):
                shared["translations"] = exec_res_list
                return "default"

        await AsyncFlow(start=TranslateNode()).run_async(shared)
        ```

    Note:
        PocketFlow's own ``max_retries``/``wait`` loop runs inside each
        admitted attempt; a RetryError only reaches the queue once that loop
        gives up.
    """

    max_per_interval: float = math.inf
    interval: float = 0
    evenly_spaced: bool = False
    pause_on_rate_limit: bool = False
    rate_limit_pause: Optional[float] = None

    def __init__(
        self,
        max_retries: int = 1,
        wait: int = 0,
        *,
        max_per_interval: Optional[float] = None,
        interval: Optional[float] = None,
        evenly_spaced: Optional[bool] = None,
        pause_on_rate_limit: Optional[bool] = None,
        rate_limit_pause: Optional[float] = None,
        queue: Optional[ThrottledQueue] = None,
    ):
        """
        Initialize the throttled batch node.

        Args:
            max_retries: PocketFlow retry attempts per item (default: 1, no retry)
            wait: Seconds to wait between PocketFlow retries (default: 0)
            max_per_interval: Override class-level max_per_interval
            interval: Override class-level interval (ms)
            evenly_spaced: Override class-level evenly_spaced
            pause_on_rate_limit: Override class-level pause_on_rate_limit
            rate_limit_pause: Override class-level rate_limit_pause (ms)
            queue: Shared queue to admit items through
        """
        super().__init__(max_retries, wait)

        if max_per_interval is not None:
            self.max_per_interval = max_per_interval
        if interval is not None:
            self.interval = interval
        if evenly_spaced is not None:
            self.evenly_spaced = evenly_spaced
        if pause_on_rate_limit is not None:
            self.pause_on_rate_limit = pause_on_rate_limit
        if rate_limit_pause is not None:
            self.rate_limit_pause = rate_limit_pause

        self._queue: Optional[ThrottledQueue] = queue

    @property
    def queue(self) -> ThrottledQueue:
        """
        Lazy-initialized queue.

        Created on first access so configuration can still change after
        instantiation but before execution.
        """
        if self._queue is None:
            self._queue = ThrottledQueue(
                max_per_interval=self.max_per_interval,
                interval=self.interval,
                evenly_spaced=self.evenly_spaced,
            )
        return self._queue

    def reset_queue(self) -> None:
        """Drop the queue; it is rebuilt from the current config on next use."""
        self._queue = None

    async def _throttled_exec(self, item: Any) -> Any:
        try:
            # AsyncNode._exec runs exec_async with PocketFlow's retry loop
            return await super(ThrottledBatchNode, self)._exec(item)
        except RetryError:
            raise
        except Exception as e:
            if self.pause_on_rate_limit and self.is_rate_limit_error(e):
                raise RetryError(
                    str(e),
                    retry_after=self.rate_limit_pause,
                    pause_queue=True,
                ) from e
            raise

    async def _exec(self, items: List[Any]) -> List[Any]:
        """
        Admit every item through the queue and gather results in order.

        Args:
            items: List of items from prep_async to process

        Returns:
            List of results in the same order as input items
        """
        if not items:
            return []

        futures = [
            self.queue.enqueue(lambda context, item=item: self._throttled_exec(item))
            for item in items
        ]
        return await asyncio.gather(*futures)

    @staticmethod
    def is_rate_limit_error(exc: Exception) -> bool:
        """
        Check if an exception indicates a rate limit error.

        Override this method to customize rate limit detection for
        specific API clients or error types.
        """
        err_str = str(exc).lower()
        return any(indicator in err_str for indicator in [
            '429',
            'rate limit',
            'rate_limit',
            'too many requests',
            'quota exceeded',
            'throttl',
        ])
