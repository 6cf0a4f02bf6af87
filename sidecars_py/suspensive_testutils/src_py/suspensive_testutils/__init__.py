import asyncio
from collections.abc import AsyncIterable

from suspensive._context import RenderContext
from suspensive._promise_state import create_promise_state_manager
from suspensive._rerender import create_rerender_signal
from suspensive._tracker import create_promise_tracker


def new_promise() -> asyncio.Future:
    """Creates a new, unsettled future on the running loop."""
    return asyncio.get_running_loop().create_future()


def settle_later(
        promise: asyncio.Future,
        value: object = None,
        *,
        delay: float = 0,
        exc: BaseException | None = None
        ) -> None:
    """Schedules the promise to be fulfilled with ``value`` (or
    rejected with ``exc``, if passed) after ``delay`` seconds.
    """
    loop = asyncio.get_running_loop()
    if exc is None:
        loop.call_later(delay, promise.set_result, value)
    else:
        loop.call_later(delay, promise.set_exception, exc)


def fake_render_context(payload: object = None) -> RenderContext:
    """A render context with fresh instances of every slot, for use
    with ``run_in_context`` outside of a render session.
    """
    return RenderContext(
        payload=payload,
        promise_state_manager=create_promise_state_manager(),
        promise_tracker=create_promise_tracker(),
        rerender_signal=create_rerender_signal())


async def collect_passes(stream: AsyncIterable[object]) -> list[object]:
    """Reads the entire render stream, returning every emitted pass."""
    return [resolved async for resolved in stream]
