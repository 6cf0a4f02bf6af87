from __future__ import annotations

import logging
from asyncio import Future
from collections.abc import Iterable
from typing import Annotated

import anyio
from docnote import Note

logger = logging.getLogger(__name__)


class PromiseTracker:
    """Aggregates every promise that suspended resolution at some point
    during a render session -- across all passes, not just the current
    one -- and reports on their settlement.

    Rejection counts as settlement here; it's the job of
    ``use_promise`` to surface the rejection reason on the next pass.
    """
    # We need the list for stable ordering and the set for cheap membership
    _tracked: list[Future]
    _tracked_set: set[Future]
    _settled: set[Future]
    suspension_count: Annotated[
        int,
        Note('''Incremented on every call to ``track_promises``, including calls
            for promises that were already tracked. Comparing it before and
            after a pass tells whether anything suspended during that pass,
            even if the promise settled before the pass finished.''')]

    def __init__(self):
        self._tracked = []
        self._tracked_set = set()
        self._settled = set()
        self.suspension_count = 0

    def track_promises(self, promises: Iterable[Future]) -> None:
        self.suspension_count += 1
        for promise in promises:
            if promise in self._tracked_set:
                continue

            self._tracked.append(promise)
            self._tracked_set.add(promise)
            promise.add_done_callback(self._mark_settled)

    def are_all_resolved(self) -> bool:
        return all(promise in self._settled for promise in self._tracked)

    def get_pending_promises(self) -> list[Future]:
        return [
            promise for promise in self._tracked
            if promise not in self._settled]

    def has_pending_promises(self) -> bool:
        return any(
            promise not in self._settled for promise in self._tracked)

    async def wait_for_any_resolution(self) -> None:
        """Waits until at least one of the currently-pending promises
        settles. If nothing is pending, this returns after a single
        checkpoint.
        """
        pending = self.get_pending_promises()
        if not pending:
            await anyio.sleep(0)
            return

        logger.debug('Waiting on %s pending promise(s)', len(pending))
        settlement = anyio.Event()

        def wake(_: Future) -> None:
            settlement.set()

        for promise in pending:
            promise.add_done_callback(wake)

        try:
            await settlement.wait()
        finally:
            for promise in pending:
                promise.remove_done_callback(wake)

    def _mark_settled(self, promise: Future) -> None:
        self._settled.add(promise)


def create_promise_tracker() -> PromiseTracker:
    return PromiseTracker()
