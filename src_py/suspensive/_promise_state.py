from __future__ import annotations

import logging
from asyncio import CancelledError
from asyncio import Future
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

type PromiseStatus = Literal['pending', 'fulfilled', 'rejected']


@dataclass(frozen=True, slots=True)
class PromiseState[T]:
    status: PromiseStatus
    value: T | None = None
    reason: BaseException | None = None

    @classmethod
    def from_settled(cls, promise: Future[T]) -> PromiseState[T]:
        """Builds the terminal state for an already-done future.
        Cancellation is treated as a rejection.
        """
        if promise.cancelled():
            return cls(status='rejected', reason=CancelledError())

        exc = promise.exception()
        if exc is None:
            return cls(status='fulfilled', value=promise.result())
        else:
            return cls(status='rejected', reason=exc)


PENDING: PromiseState = PromiseState(status='pending')


class PromiseStateManager:
    """Keeps track of the settlement state of every promise observed
    during a render session. Promises are keyed by identity, so two
    futures that resolve to equal values are still tracked separately.

    Note that states are never evicted. The manager lives exactly as
    long as its session, and a promise that settled during one pass
    must be immediately available during every subsequent pass.
    """
    _states: dict[Future, PromiseState]

    def __init__(self):
        self._states = {}

    def __len__(self) -> int:
        return len(self._states)

    def get_state[T](self, promise: Future[T]) -> PromiseState[T] | None:
        return self._states.get(promise)

    def set_state[T](self, promise: Future[T], state: PromiseState[T]):
        self._states[promise] = state

    def observe(self, promise: Future) -> None:
        """Registers the promise as pending and attaches a continuation
        that records its settlement. This does not block.
        """
        self.set_state(promise, PENDING)
        promise.add_done_callback(self._record_settlement)

    def _record_settlement(self, promise: Future) -> None:
        state = PromiseState.from_settled(promise)
        logger.debug('Promise settled as %s: %r', state.status, promise)
        self.set_state(promise, state)


def create_promise_state_manager() -> PromiseStateManager:
    return PromiseStateManager()
