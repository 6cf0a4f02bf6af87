from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncGenerator
from collections.abc import Awaitable
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from functools import partial
from typing import Annotated

from anyio import create_task_group
from docnote import Note

from suspensive._context import RenderContext
from suspensive._context import run_in_context_async
from suspensive._promise_state import create_promise_state_manager
from suspensive._rerender import create_rerender_signal
from suspensive._resolver import resolve_tree
from suspensive._tracker import create_promise_tracker
from suspensive.exceptions import DependencySignal
from suspensive.exceptions import RenderIncomplete
from suspensive.exceptions import RenderPassLimitExceeded

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 1000

type LifecycleCallback = Callable[
    [RenderLifecycleHelpers], Awaitable[None] | None]


@dataclass(slots=True, kw_only=True)
class RenderConfig:
    # The lambda here is so that the DEFAULT_MAX_PASSES can be changed at
    # runtime by library consumers
    max_passes: Annotated[
        int,
        Note('''The maximum number of passes a single session may run before
            raising ``RenderPassLimitExceeded``. This guards against
            components that request a rerender on every pass.''')
        ] = field(default_factory=lambda: DEFAULT_MAX_PASSES)
    await_rerender_after_settle: Annotated[
        bool,
        Note('''If True, once everything has settled, the session stays open
            and waits for further rerender requests (for example, from
            external events) instead of finishing. The session then ends
            only when the consumer stops reading, or when the session is
            explicitly closed.''')
        ] = False


@dataclass(frozen=True, slots=True)
class RenderLifecycleHelpers:
    request_rerender: Callable[[], None]
    pass_index: int


@dataclass(slots=True, kw_only=True)
class RenderLifecycleCallbacks:
    """Optional hooks into the render loop. Each may be sync or async,
    and is called (outside of the render context) with a
    ``RenderLifecycleHelpers`` instance.
    """
    pre_render: Annotated[
        LifecycleCallback | None,
        Note('Called before every pass.')] = None
    post_render: Annotated[
        LifecycleCallback | None,
        Note('''Called after every pass, whether it completed or suspended,
            before the pass is emitted.''')] = None
    post_render_cycle: Annotated[
        LifecycleCallback | None,
        Note('''Called once everything has settled and no rerender was
            requested. Requesting a rerender from here starts a new
            cycle.''')] = None


class SessionState(Enum):
    IDLE = 'idle'
    RESOLVING = 'resolving'
    AWAITING_PROGRESS = 'awaiting_progress'
    SETTLED = 'settled'
    DONE = 'done'


class RenderSession[P]:
    """A render session repeatedly resolves the root node until all of
    the promises it depends upon have settled and no rerender has been
    requested. Every pass that resolves completely is emitted as a
    snapshot of the whole tree; passes that suspend without any
    enclosing suspense boundary are not emitted.

    Sessions own their promise state, tracker, and rerender signal, and
    can only be driven once.
    """
    root: object
    payload: P | None
    callbacks: RenderLifecycleCallbacks
    config: RenderConfig

    def __init__(
            self,
            root: object,
            payload: P | None = None,
            *,
            callbacks: RenderLifecycleCallbacks | None = None,
            config: RenderConfig | None = None):
        self.root = root
        self.payload = payload
        self.callbacks = (
            RenderLifecycleCallbacks() if callbacks is None else callbacks)
        self.config = RenderConfig() if config is None else config

        self.promise_state_manager = create_promise_state_manager()
        self.promise_tracker = create_promise_tracker()
        self.rerender_signal = create_rerender_signal()

        self._state = SessionState.IDLE
        self._pass_count = 0
        self._started = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pass_count(self) -> int:
        return self._pass_count

    def close(self) -> None:
        """Stops the session after the current pass. Any further
        rerender requests are ignored.
        """
        self.rerender_signal.close()

    async def passes(self) -> AsyncGenerator[object, None]:
        """Drives the render loop, yielding the resolved tree for every
        completed pass. Closing the generator closes the session.
        """
        if self._started:
            raise RuntimeError('Render sessions can only be driven once!')
        self._started = True

        signal = self.rerender_signal
        tracker = self.promise_tracker
        try:
            while not signal.closed:
                suspensions_before = tracker.suspension_count
                resolved, completed = await self._run_pass()
                suspended = tracker.suspension_count != suspensions_before

                await self._call_lifecycle(self.callbacks.post_render)
                if completed:
                    yield resolved

                if signal.should_rerender():
                    continue

                if tracker.has_pending_promises():
                    await self._await_progress()
                    continue

                # Anything that suspended during the pass may have settled
                # before the pass finished, so the pass is stale.
                if suspended:
                    logger.debug(
                        'Promises settled during pass %s; rendering again',
                        self._pass_count - 1)
                    continue

                self._state = SessionState.SETTLED
                await self._call_lifecycle(self.callbacks.post_render_cycle)
                if signal.should_rerender():
                    continue

                if self.config.await_rerender_after_settle:
                    logger.debug('Session settled; awaiting rerender request')
                    await signal.wait_for_request()
                    continue

                break

        finally:
            signal.close()
            self._state = SessionState.DONE
            logger.debug('Render session done after %s pass(es)',
                self._pass_count)

    async def _run_pass(self) -> tuple[object, bool]:
        """Runs a single pass. Returns the resolved tree and True if
        it completed, or None and False if it suspended.
        """
        if self._pass_count >= self.config.max_passes:
            raise RenderPassLimitExceeded(
                'Render session exceeded its maximum number of passes',
                self.config.max_passes)

        pass_index = self._pass_count
        self._pass_count += 1
        self.rerender_signal.clear_rerender_request()
        self._state = SessionState.RESOLVING
        await self._call_lifecycle(self.callbacks.pre_render)

        logger.debug('Starting render pass %s', pass_index)
        render_ctx = RenderContext(
            payload=self.payload,
            promise_state_manager=self.promise_state_manager,
            promise_tracker=self.promise_tracker,
            rerender_signal=self.rerender_signal)

        try:
            resolved = await run_in_context_async(
                render_ctx, partial(resolve_tree, self.root))

        except DependencySignal as signal:
            self.promise_tracker.track_promises(signal.promises)
            logger.debug(
                'Render pass %s suspended on %s promise(s)',
                pass_index, len(signal.promises))
            return None, False

        logger.debug('Render pass %s completed', pass_index)
        return resolved, True

    async def _await_progress(self) -> None:
        """Waits until either a pending promise settles or a rerender
        is requested, whichever comes first.
        """
        self._state = SessionState.AWAITING_PROGRESS

        async with create_task_group() as task_group:
            async def race(waiter: Callable[[], Awaitable[None]]):
                await waiter()
                task_group.cancel_scope.cancel()

            task_group.start_soon(
                race, self.promise_tracker.wait_for_any_resolution)
            task_group.start_soon(
                race, self.rerender_signal.wait_for_request)

    async def _call_lifecycle(
            self,
            callback: LifecycleCallback | None
            ) -> None:
        if callback is None:
            return

        result = callback(RenderLifecycleHelpers(
            request_rerender=self.rerender_signal.request_rerender,
            # The count is incremented as soon as a pass starts, so this is
            # always the index of the current (or most recent) pass.
            pass_index=self._pass_count - 1))
        if inspect.isawaitable(result):
            await result


async def render_to_stream[P](
        root: object,
        payload: P | None = None,
        *,
        callbacks: RenderLifecycleCallbacks | None = None,
        config: RenderConfig | None = None
        ) -> AsyncGenerator[object, None]:
    """Creates a new render session for the root node and yields every
    pass it emits. Consumers that only care about the final result can
    use ``render_to_completion`` instead.
    """
    session = RenderSession(
        root, payload, callbacks=callbacks, config=config)
    async with aclosing(session.passes()) as passes:
        async for resolved in passes:
            yield resolved


async def render_to_completion[P](
        root: object,
        payload: P | None = None,
        *,
        callbacks: RenderLifecycleCallbacks | None = None,
        config: RenderConfig | None = None
        ) -> object:
    """Renders the root node until the session is done, and returns the
    final emitted tree.
    """
    emitted = False
    final = None
    async with aclosing(render_to_stream(
        root, payload, callbacks=callbacks, config=config
    )) as stream:
        async for resolved in stream:
            emitted = True
            final = resolved

    if not emitted:
        raise RenderIncomplete(
            'Render session finished without emitting a resolved tree')

    return final
