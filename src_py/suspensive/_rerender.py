from __future__ import annotations

import logging

import anyio

logger = logging.getLogger(__name__)


class RerenderSignal:
    """A per-session capability that lets components (or anything else
    holding a reference to it) ask for one more render pass, even if
    every tracked promise has already settled.

    This must only be used from the thread running the session's event
    loop.
    """
    _requested: bool
    _closed: bool
    _waiters: set[anyio.Event]

    def __init__(self):
        self._requested = False
        self._closed = False
        self._waiters = set()

    @property
    def closed(self) -> bool:
        return self._closed

    def request_rerender(self) -> None:
        if self._closed:
            logger.debug('Ignoring rerender request on closed signal')
            return

        self._requested = True
        self._wake()

    def should_rerender(self) -> bool:
        return self._requested

    def clear_rerender_request(self) -> None:
        self._requested = False

    async def wait_for_request(self) -> None:
        """Waits until a rerender is requested or the signal is closed.
        Returns immediately if either has already happened.
        """
        if self._requested or self._closed:
            await anyio.sleep(0)
            return

        wakeup = anyio.Event()
        self._waiters.add(wakeup)
        try:
            await wakeup.wait()
        finally:
            self._waiters.discard(wakeup)

    def close(self) -> None:
        """Closes the signal. Further requests become no-ops, and any
        pending ``wait_for_request`` returns.
        """
        self._closed = True
        self._wake()

    def _wake(self):
        for wakeup in tuple(self._waiters):
            wakeup.set()


def create_rerender_signal() -> RerenderSignal:
    return RerenderSignal()
