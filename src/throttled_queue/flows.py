"""
Throttled Flow Classes
======================

Extension of PocketFlow's AsyncParallelBatchFlow that admits each flow
instance through a ThrottledQueue.
"""

import asyncio
import math
from typing import Any, Dict, List, Optional

from pocketflow import AsyncParallelBatchFlow

from .throttler import ThrottledQueue


class ThrottledBatchFlow(AsyncParallelBatchFlow):
    """
    AsyncParallelBatchFlow with interval-windowed flow starts.

    Each parameter dict returned by ``prep_async`` starts one run of the
    node graph; at most ``max_flows_per_interval`` runs start per
    ``flow_interval`` milliseconds. Runs that fail do not abort the others.

    Class Attributes:
        max_flows_per_interval (float): Flow starts per window (default: unbounded)
        flow_interval (float): Window length in ms (default: 0 = unbounded)

    Example:
        ```python
        class ProcessUsersFlow(ThrottledBatchFlow):
            max_flows_per_interval = 10
            flow_interval = seconds(1)

            async def prep_async(self, shared):
                return [{"user_id": uid} for uid in shared["user_ids"]]

        flow = ProcessUsersFlow(start=FetchUserNode())
        await flow.run_async({"user_ids": range(1000)})
        print(flow.stats)
        ```

    Note:
        All flow instances share the same ``shared`` dict.
        Use ``self.params`` for per-instance data.
    """

    max_flows_per_interval: float = math.inf
    flow_interval: float = 0

    def __init__(
        self,
        start=None,
        *,
        max_flows_per_interval: Optional[float] = None,
        flow_interval: Optional[float] = None,
        queue: Optional[ThrottledQueue] = None,
    ):
        super().__init__(start=start)

        if max_flows_per_interval is not None:
            self.max_flows_per_interval = max_flows_per_interval
        if flow_interval is not None:
            self.flow_interval = flow_interval

        self._flow_queue: Optional[ThrottledQueue] = queue
        self._completed_flows: int = 0
        self._failed_flows: int = 0
        self._flow_results: List[Any] = []

    @property
    def flow_queue(self) -> ThrottledQueue:
        """Lazy-initialized queue that admits flow instances."""
        if self._flow_queue is None:
            self._flow_queue = ThrottledQueue(
                max_per_interval=self.max_flows_per_interval,
                interval=self.flow_interval,
            )
        return self._flow_queue

    def reset_flow_queue(self) -> None:
        """Drop the flow queue and statistics."""
        self._flow_queue = None
        self._completed_flows = 0
        self._failed_flows = 0
        self._flow_results = []

    @property
    def stats(self) -> Dict[str, Any]:
        """
        Get current flow execution statistics.

        Returns:
            Dict containing the configured limits and the number of
            completed and failed flow instances of the last run.
        """
        return {
            "max_flows_per_interval": self.max_flows_per_interval,
            "flow_interval": self.flow_interval,
            "completed_flows": self._completed_flows,
            "failed_flows": self._failed_flows,
        }

    async def _run_async(self, shared: Dict[str, Any]) -> Any:
        pr = await self.prep_async(shared) or []

        self._completed_flows = 0
        self._failed_flows = 0
        self._flow_results = []

        async def run_one(bp: Dict[str, Any]) -> Any:
            try:
                result = await self.flow_queue.enqueue(
                    lambda context: self._orch_async(shared, {**self.params, **bp})
                )
            except Exception:
                self._failed_flows += 1
                raise
            self._completed_flows += 1
            return result

        results = await asyncio.gather(
            *(run_one(bp) for bp in pr),
            return_exceptions=True
        )

        self._flow_results = results
        return await self.post_async(shared, pr, results)
