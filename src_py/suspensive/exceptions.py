from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from asyncio import Future


class SuspensiveException(Exception):
    """Base class for all suspensive exceptions."""


class NotRendering(SuspensiveException):
    """Raised when trying to read the current render context from
    outside of any ``run_in_context`` call.
    """


class NestedContext(SuspensiveException):
    """Raised when ``run_in_context`` is called while another context
    is already installed within the same logical task. Render sessions
    are not reentrant; if you need two of them, run them sequentially,
    or start them from separate tasks that were themselves created
    outside of any render.
    """


class MissingSuspenseContext(SuspensiveException):
    """Raised by ``use_promise`` when it is called outside of a render,
    or within a render context that doesn't expose a promise state
    manager.
    """


class MissingRerenderSignal(SuspensiveException):
    """Raised by ``get_rerender_signal`` when the current render context
    doesn't expose a rerender signal.
    """


class DependencySignal(Exception):  # noqa: N818
    """This is the control flow signal used to abort resolution of a
    branch that depends upon a promise that hasn't settled yet. It is
    caught by the render loop (or an explicit suspense boundary) and
    never reaches the consumer of the render stream.

    Note that this is intentionally **not** a ``SuspensiveException``,
    so that catching those will never accidentally swallow a suspension.
    Component authors should take care not to catch it either; if you
    have a broad ``except Exception`` within a component that calls
    ``use_promise``, re-raise this first.
    """
    promises: tuple[Future, ...]

    def __init__(self, *promises: Future):
        super().__init__(*promises)
        self.promises = promises

    @property
    def promise(self) -> Future:
        """The first (and usually only) promise that caused the
        suspension.
        """
        return self.promises[0]


class RejectedDependency(SuspensiveException):
    """Raised by ``use_promise`` when the promise it was passed settled
    with an exception. Should always be raised ^^from^^ the rejection
    reason, so that its traceback is preserved.
    """
    promise: Future
    reason: BaseException

    def __init__(self, *args, promise: Future, reason: BaseException):
        super().__init__(*args)
        self.promise = promise
        self.reason = reason


class MismatchedRenderColor(SuspensiveException):
    """Raised when an async callback is passed to the synchronous
    ``run_in_context``. Use ``run_in_context_async`` instead.
    """


class RenderPassLimitExceeded(SuspensiveException):
    """Raised when a render session exceeds its configured maximum
    number of passes. This is almost always the result of a component
    that unconditionally requests a rerender on every pass.
    """


class RenderIncomplete(SuspensiveException):
    """Raised by ``render_to_completion`` when the session finished
    without ever emitting a resolved tree.
    """
