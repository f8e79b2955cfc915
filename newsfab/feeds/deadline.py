"""Shared fetch deadline that can be pulled in but never pushed out."""

import asyncio


class Deadline:
    """
    An instant on the event loop clock shared by all fetches of a cycle.

    The scheduler may shorten it (e.g. on shutdown); anyone awaiting
    wait() is woken and re-arms against the new expiry.

    Must be created inside a running event loop.
    """

    def __init__(self, timeout: float):
        self._loop = asyncio.get_running_loop()
        self._expires_at = self._loop.time() + timeout
        self._changed = asyncio.Event()

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._expires_at - self._loop.time())

    @property
    def expired(self) -> bool:
        return self._loop.time() >= self._expires_at

    def shorten(self, timeout: float) -> bool:
        """
        Move the expiry to `timeout` seconds from now if that is earlier.

        Returns:
            True if the deadline moved
        """
        new_expiry = self._loop.time() + max(0.0, timeout)
        if new_expiry >= self._expires_at:
            return False
        self._expires_at = new_expiry
        self._changed.set()
        return True

    async def wait(self) -> None:
        """Block until the deadline passes, following any shortening."""
        while True:
            self._changed.clear()
            remaining = self.remaining()
            if remaining <= 0:
                return
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.2f}s)"
