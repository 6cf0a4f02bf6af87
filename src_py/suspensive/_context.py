from __future__ import annotations

import inspect
import typing
from collections.abc import Awaitable
from collections.abc import Callable
from contextvars import ContextVar
from contextvars import Token
from dataclasses import dataclass
from typing import Annotated
from typing import Final
from typing import cast

from docnote import Note

from suspensive.exceptions import MismatchedRenderColor
from suspensive.exceptions import NestedContext
from suspensive.exceptions import NotRendering

if typing.TYPE_CHECKING:
    from suspensive._promise_state import PromiseStateManager
    from suspensive._rerender import RerenderSignal
    from suspensive._tracker import PromiseTracker

# These are the attribute names that the hooks look up on whatever context
# is currently installed. RenderContext declares all of them, but any object
# with the same attributes works.
PROMISE_STATE_SLOT: Final = 'promise_state_manager'
PROMISE_TRACKER_SLOT: Final = 'promise_tracker'
RERENDER_SIGNAL_SLOT: Final = 'rerender_signal'

_NOT_RENDERING: Final = object()
_ACTIVE_CONTEXT: ContextVar[object] = ContextVar(
    '_ACTIVE_CONTEXT', default=_NOT_RENDERING)


@dataclass(frozen=True, slots=True)
class RenderContext[P]:
    """The context installed by a render session for the duration of
    each pass. This is what components get back from
    ``get_current_context``.
    """
    payload: Annotated[
        P,
        Note('''The arbitrary value passed by the caller when starting the
            render session. The engine never inspects it.''')]
    promise_state_manager: PromiseStateManager | None = None
    promise_tracker: PromiseTracker | None = None
    rerender_signal: RerenderSignal | None = None


def get_current_context[T](as_type: type[T] | None = None, /) -> T:
    """Returns the value installed by the currently-running
    ``run_in_context``, or raises ``NotRendering`` if there is none.

    The optional positional-only type argument is unused at runtime;
    it is purely a convenience for type checkers:

    __embed__: 'code/python'
        ctx = get_current_context(RenderContext)
    """
    current = _ACTIVE_CONTEXT.get()
    if current is _NOT_RENDERING:
        raise NotRendering(
            'get_current_context can only be called during rendering')

    return cast(T, current)


def run_in_context[T](value: object, callback: Callable[[], T]) -> T:
    """Runs the (synchronous) callback with ``value`` installed as the
    current context, and returns its result. The context is always
    cleared before returning, regardless of whether the callback
    returned or raised.

    If the callback returns an awaitable, it is closed without being
    awaited and ``MismatchedRenderColor`` is raised; awaiting it later
    would run it without the context installed. Use
    ``run_in_context_async`` for async callbacks.
    """
    ctx_token = _install(value)
    try:
        result = callback()
        if inspect.isawaitable(result):
            _discard_awaitable(result)
            raise MismatchedRenderColor(
                'Async callbacks cannot be used with run_in_context! Use '
                + 'run_in_context_async instead.', callback)

        return result

    finally:
        _ACTIVE_CONTEXT.reset(ctx_token)


async def run_in_context_async[T](
        value: object,
        callback: Callable[[], Awaitable[T] | T]
        ) -> T:
    """Async counterpart to ``run_in_context``. If the callback returns
    an awaitable, it is awaited with the context still installed. The
    context is cleared once the callback settles, whether it fulfilled
    or raised.
    """
    ctx_token = _install(value)
    try:
        result = callback()
        if inspect.isawaitable(result):
            return await result

        return cast(T, result)

    finally:
        _ACTIVE_CONTEXT.reset(ctx_token)


def _install(value: object) -> Token[object]:
    if _ACTIVE_CONTEXT.get() is not _NOT_RENDERING:
        raise NestedContext(
            'Cannot install a render context while another one is already '
            + 'active. Render sessions are not reentrant.')

    return _ACTIVE_CONTEXT.set(value)


def _discard_awaitable(awaitable: Awaitable) -> None:
    # Coroutines complain about never being awaited unless explicitly closed
    close = getattr(awaitable, 'close', None)
    if close is not None:
        close()
