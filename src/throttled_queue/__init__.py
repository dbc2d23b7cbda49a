"""
Throttled Queue - Interval-Windowed Work Throttling for asyncio
===============================================================

Releases arbitrary units of work over time so that no more than a configured
number start within any interval window. Wrap outbound calls (e.g. to a
rate-limited remote API) and get backpressure without hand-rolled timers.

Features:
    - Fixed-window admission with a self-correcting timer
    - Evenly spaced mode (one admission every interval / max)
    - Strict FIFO admission order
    - Retry or pause-the-whole-queue on demand via RetryError
    - Pre-configured presets for popular LLM providers
    - PocketFlow batch node and flow integrations

Quick Start:
    ```python
    import asyncio
    from throttled_queue import ThrottledQueue, RetryError, seconds

    queue = ThrottledQueue(max_per_interval=5, interval=seconds(1))

    async def call_api(ctx):
        response = await client.get(ctx.state["url"])
        if response.status_code == 429:
            raise RetryError(retry_after=seconds(10), pause_queue=True)
        return response.json()

    results = await asyncio.gather(
        *[queue.enqueue(call_api, {"url": url}) for url in urls]
    )
    ```

Classes:
    ThrottledQueue: The throttling queue
    ExecutionContext: What queued work receives on each attempt
    RetryError: Raised by work to retry later or pause the queue
    QueueRegistry: Named shared queues
    Presets: Pre-configured limits for popular services
    ThrottledBatchNode / ThrottledBatchFlow: PocketFlow integrations
"""

__version__ = "3.0.0"
__author__ = "Jason-AI-lab"

from .exceptions import RetryError
from .flows import ThrottledBatchFlow
from .nodes import ThrottledBatchNode
from .presets import Presets, QueueConfig
from .shared import QueueRegistry
from .throttler import (
    DEFAULT_RETRY_LIMIT,
    DEFAULT_WAIT,
    ExecutionContext,
    ThrottledQueue,
)
from .units import hours, minutes, seconds

__all__ = [
    # Version info
    "__version__",

    # Core classes
    "ThrottledQueue",
    "ExecutionContext",
    "RetryError",
    "DEFAULT_WAIT",
    "DEFAULT_RETRY_LIMIT",

    # Units
    "seconds",
    "minutes",
    "hours",

    # Shared queues
    "QueueRegistry",

    # PocketFlow integration
    "ThrottledBatchNode",
    "ThrottledBatchFlow",

    # Configuration
    "Presets",
    "QueueConfig",
]


def main() -> None:
    """CLI entry point - displays package info."""
    print(f"Throttled Queue v{__version__}")
    print("=" * 40)
    print(__doc__)
    print("\nAvailable Presets:")
    for name, desc in Presets.list_presets().items():
        print(f"  - {name}: {desc}")
