"""These are the functions available to component authors during
rendering. All of them rely upon the currently-installed render
context, and therefore can only be called while a component is being
resolved.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import cast

from suspensive._context import PROMISE_STATE_SLOT
from suspensive._context import PROMISE_TRACKER_SLOT
from suspensive._context import RERENDER_SIGNAL_SLOT
from suspensive._context import get_current_context
from suspensive._promise_state import PromiseStateManager
from suspensive._rerender import RerenderSignal
from suspensive._tracker import PromiseTracker
from suspensive.elements import TreeContext
from suspensive.exceptions import DependencySignal
from suspensive.exceptions import MissingRerenderSignal
from suspensive.exceptions import MissingSuspenseContext
from suspensive.exceptions import NotRendering
from suspensive.exceptions import RejectedDependency

logger = logging.getLogger(__name__)


def use_promise[T](promise: asyncio.Future[T]) -> T:
    """Returns the result of the passed promise if it has already
    fulfilled. Otherwise, suspends the current branch by raising a
    ``DependencySignal`` carrying the promise; the render loop (or the
    nearest suspense boundary) catches it and tries again once the
    promise settles.

    The promise must be created **outside** of the component calling
    this (or at least cached somewhere that outlives a single pass).
    Promises are tracked by identity, so a component that creates a new
    future on every pass will never make progress.

    If the promise was rejected, raises ``RejectedDependency`` from the
    rejection reason.
    """
    if not asyncio.isfuture(promise):
        raise TypeError(
            'use_promise requires an asyncio future or task. To use a '
            + 'coroutine, wrap it in a task outside of rendering.', promise)

    manager = _get_promise_state_manager()
    state = manager.get_state(promise)

    if state is None:
        manager.observe(promise)
        tracker = _find_slot(PROMISE_TRACKER_SLOT)
        if tracker is not None:
            cast(PromiseTracker, tracker).track_promises((promise,))

        raise DependencySignal(promise)

    if state.status == 'fulfilled':
        return cast(T, state.value)

    if state.status == 'rejected':
        reason = cast(BaseException, state.reason)
        raise RejectedDependency(
            'Promise passed to use_promise was rejected',
            promise=promise,
            reason=reason
        ) from reason

    raise DependencySignal(promise)


def use[T](promise: asyncio.Future[T]) -> T:
    """A lighter-weight version of ``use_promise`` that doesn't need a
    promise state manager, and can therefore be called anywhere --
    including outside of rendering. The future itself is the source of
    truth for its state.

    Unlike ``use_promise``, a rejection raises the rejection reason
    directly, instead of wrapping it in a ``RejectedDependency``.
    Cancelled futures are the exception to that, since letting a
    ``CancelledError`` escape would cancel the surrounding task.
    """
    if not asyncio.isfuture(promise):
        raise TypeError(
            'use requires an asyncio future or task. To use a coroutine, '
            + 'wrap it in a task outside of rendering.', promise)

    if promise.cancelled():
        reason = asyncio.CancelledError()
        raise RejectedDependency(
            'Promise passed to use was cancelled',
            promise=promise,
            reason=reason
        ) from reason

    if promise.done():
        return promise.result()

    tracker = _find_slot(PROMISE_TRACKER_SLOT)
    if tracker is not None:
        cast(PromiseTracker, tracker).track_promises((promise,))

    raise DependencySignal(promise)


def get_rerender_signal() -> RerenderSignal:
    """Returns the rerender signal for the current render session, or
    raises ``MissingRerenderSignal`` if the current context doesn't
    have one.
    """
    signal = _find_slot(RERENDER_SIGNAL_SLOT)
    if signal is None:
        raise MissingRerenderSignal(
            'Rerender requests can only be made during rendering with a '
            + f'context that has a {RERENDER_SIGNAL_SLOT}')

    return cast(RerenderSignal, signal)


def use_rerender() -> Callable[[], None]:
    """Returns a callable that requests another render pass. It may be
    called immediately, or held on to and called later (for example,
    from an event handler), for as long as the session is open.
    """
    return get_rerender_signal().request_rerender


def use_context[T](tree_context: TreeContext[T]) -> T:
    """Returns the value from the nearest enclosing provider for the
    passed tree context, or its default if there is none.
    """
    return tree_context.get()


def _get_promise_state_manager() -> PromiseStateManager:
    manager = _find_slot(PROMISE_STATE_SLOT)
    if manager is None:
        raise MissingSuspenseContext(
            'use_promise can only be called during rendering with a context '
            + f'that has a {PROMISE_STATE_SLOT}')

    return cast(PromiseStateManager, manager)


def _find_slot(slot_name: str) -> object | None:
    try:
        current = get_current_context()
    except NotRendering:
        return None

    return getattr(current, slot_name, None)
