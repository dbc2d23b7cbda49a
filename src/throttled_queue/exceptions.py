"""
Exception Classes
=================

Control-signal exception raised by queued work to ask the queue for a retry.
"""

from typing import Optional


class RetryError(Exception):
    """
    Raised by queued work to be retried later.

    The queue intercepts this exception instead of failing the caller's
    future. A plain retry waits ``retry_after`` milliseconds and re-enqueues
    the same execution; with ``pause_queue=True`` the whole queue stops
    admitting new work until the wait is over.

    The error only reaches the caller once the execution's retry budget is
    used up.

    Attributes:
        retry_after: Milliseconds to wait before retrying (None = queue default)
        pause_queue: Whether to withhold all further admissions while waiting

    Example:
        ```python
        async def fetch(ctx):
            response = await client.get(url)
            if response.status_code == 429:
                raise RetryError(
                    "Remote quota exhausted",
                    retry_after=seconds(response.headers["Retry-After"]),
                    pause_queue=True,
                )
            return response.json()

        data = await queue.enqueue(fetch)
        ```
    """

    def __init__(
        self,
        message: str = "Maximum retry limit reached.",
        retry_after: Optional[float] = None,
        pause_queue: bool = False,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.pause_queue = pause_queue

    def __repr__(self) -> str:
        parts = [f"RetryError({self.args[0]!r}"]
        if self.retry_after is not None:
            parts.append(f", retry_after={self.retry_after}")
        if self.pause_queue:
            parts.append(", pause_queue=True")
        parts.append(")")
        return "".join(parts)
