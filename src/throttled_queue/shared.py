"""
Shared Queues
=============

Registry for managing shared throttled queues across components.
Useful when several parts of an application call the same remote API and
must respect one global quota.
"""

import logging
from typing import Any, Dict, List, Optional

from .throttler import ThrottledQueue

logger = logging.getLogger(__name__)


class QueueRegistry:
    """
    Registry for shared throttled queues.

    Queues are plain instances; the registry only gives them names so that
    independent components can find the same one. Nothing is shared unless
    it is registered here.

    Example:
        ```python
        # Register at app startup
        QueueRegistry.register("github", max_per_interval=5000, interval=hours(1))

        # Anywhere else
        queue = QueueRegistry.get("github")
        repo = await queue.enqueue(lambda ctx: gh.get_repo(name))

        # Or lazily
        queue = QueueRegistry.get_or_create("openai", **Presets.OPENAI_TIER1)
        ```

    Thread Safety:
        The registry is not thread-safe for registration. Register queues
        during application startup, from the thread running the event loop.
    """

    _queues: Dict[str, ThrottledQueue] = {}

    @classmethod
    def register(
        cls,
        name: str,
        queue: Optional[ThrottledQueue] = None,
        *,
        replace: bool = False,
        **options: Any,
    ) -> ThrottledQueue:
        """
        Register a named shared queue.

        Args:
            name: Unique identifier for the queue
            queue: Existing queue to register; built from ``options`` if None
            replace: If True, replace an existing queue with the same name
            **options: ThrottledQueue keyword arguments

        Returns:
            The registered ThrottledQueue

        Raises:
            ValueError: If the name is taken and replace=False, or if both
                a queue and options are given
        """
        if name in cls._queues and not replace:
            raise ValueError(
                f"Queue '{name}' already exists. Use replace=True to override."
            )
        if queue is not None and options:
            raise ValueError("Pass either a queue instance or queue options, not both.")

        cls._queues[name] = queue if queue is not None else ThrottledQueue(**options)
        logger.debug(f"Registered shared queue '{name}': {cls._queues[name]!r}")
        return cls._queues[name]

    @classmethod
    def get(cls, name: str) -> ThrottledQueue:
        """
        Get a registered queue by name.

        Raises:
            KeyError: If queue not found
        """
        if name not in cls._queues:
            raise KeyError(
                f"Queue '{name}' not found. Register it first with "
                f"QueueRegistry.register('{name}', ...) or use get_or_create()."
            )
        return cls._queues[name]

    @classmethod
    def get_or_create(cls, name: str, **options: Any) -> ThrottledQueue:
        """
        Get existing queue or create a new one if it does not exist.

        Note:
            If the queue already exists, ``options`` are ignored and the
            existing queue is returned unchanged.
        """
        if name not in cls._queues:
            cls.register(name, **options)
        return cls._queues[name]

    @classmethod
    def remove(cls, name: str) -> bool:
        """
        Remove a queue from the registry.

        Work already enqueued on it still runs to completion.

        Returns:
            True if removed, False if not found
        """
        return cls._queues.pop(name, None) is not None

    @classmethod
    def reset(cls) -> None:
        """Clear the entire registry."""
        cls._queues.clear()

    @classmethod
    def exists(cls, name: str) -> bool:
        return name in cls._queues

    @classmethod
    def list_names(cls) -> List[str]:
        return list(cls._queues.keys())

    @classmethod
    def stats(cls, name: str) -> Dict[str, Any]:
        """
        Get current statistics for a queue.

        Raises:
            KeyError: If queue not found
        """
        return cls.get(name).stats

    @classmethod
    def list_all(cls) -> Dict[str, Dict[str, Any]]:
        """
        List all registered queues with their statistics.

        Example:
            ```python
            for name, stats in QueueRegistry.list_all().items():
                print(f"{name}: {stats['pending']} pending")
            ```
        """
        return {name: queue.stats for name, queue in cls._queues.items()}
