"""Cooperative cancellation shared by every fetch of one export run."""
import asyncio
from typing import Awaitable, TypeVar

from .errors import ExportCancelledError

T = TypeVar("T")


class CancellationToken:
    """Signal checked before each new fetch and raced against in-flight ones.

    Examples:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExportCancelledError("Export cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        The abandoned operation is cancelled and its result discarded.

        Raises:
            ExportCancelledError: If the token was or becomes cancelled
        """
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done and not self.cancelled:
            return task.result()

        if task.done():
            if not task.cancelled():
                task.exception()
        else:
            task.cancel()
        raise ExportCancelledError("Export cancelled")
