from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from typing import cast

from anyio import create_task_group

from suspensive._context import PROMISE_TRACKER_SLOT
from suspensive._context import get_current_context
from suspensive._tracker import PromiseTracker
from suspensive.elements import ComponentElement
from suspensive.elements import ErrorBoundaryElement
from suspensive.elements import Fragment
from suspensive.elements import IntrinsicElement
from suspensive.elements import ProviderElement
from suspensive.elements import RenderedIntrinsic
from suspensive.elements import RenderedText
from suspensive.elements import SuspenseElement
from suspensive.elements import is_element
from suspensive.exceptions import DependencySignal
from suspensive.exceptions import NotRendering

logger = logging.getLogger(__name__)

# Note: str is excluded from the sequence check everywhere below; strings
# are terminals, not data nodes.
_TERMINAL_TYPES = (str, bytes, int, float, bool)


class _Spread(tuple):
    """Marks the resolved children of a fragment, so that they can be
    spliced into whatever sequence contains them.
    """
    __slots__ = ()


@dataclass(slots=True)
class _BranchOutcome:
    """Each fan-out branch records its own result instead of raising
    within the task group. Otherwise, the first failure would cancel all
    of its siblings.
    """
    value: object = None
    exc: Exception | None = None


async def resolve_tree(node: object) -> object:
    """Recursively resolves the passed node, calling every component
    within it, and returns the fully-resolved tree.

    Dependency signals raised by components propagate out of this
    unmodified unless they are caught by an explicit suspense boundary
    within the tree. Any other exception propagates as well (unless
    caught by an error boundary), aborting the resolution.
    """
    resolved = await _resolve(node)
    if isinstance(resolved, _Spread):
        return list(resolved)
    return resolved


async def _resolve(node: object) -> object:  # noqa: PLR0911
    # Quick note: terminals are by far the most common case, so check them
    # first. This also keeps strings from being treated as sequences.
    if node is None or isinstance(node, _TERMINAL_TYPES):
        return node

    if is_element(node):
        if isinstance(node, ComponentElement):
            return await _resolve_component(node)
        elif isinstance(node, IntrinsicElement):
            return await _resolve_intrinsic(node)
        elif isinstance(node, Fragment):
            return _Spread(await _resolve_sequence(node.children))
        elif isinstance(node, SuspenseElement):
            return await _resolve_suspense(node)
        elif isinstance(node, ErrorBoundaryElement):
            return await _resolve_error_boundary(node)
        elif isinstance(node, ProviderElement):
            with node.context.providing(node.value):
                return await _resolve(node.children)

        raise RuntimeError(
            'Impossible branch: unhandled element type', type(node))

    if isinstance(node, Mapping):
        return await _resolve_mapping(node)

    if isinstance(node, (list, tuple)):
        return await _resolve_sequence(node)

    return node


async def _resolve_component(node: ComponentElement) -> object:
    rendered = node.component(**node.props)
    if inspect.isawaitable(rendered):
        rendered = await rendered

    return await _resolve(rendered)


async def _resolve_intrinsic(node: IntrinsicElement) -> RenderedIntrinsic:
    props, children = await _fan_out((node.props, node.children))
    # Note: the resolved props are always a dict, since they started out as a
    # mapping, and children are always a list (from the tuple). The flatten
    # handles any fragments within them.
    return RenderedIntrinsic(
        name=node.name,
        props=props,  # type: ignore
        children=tuple(_normalize_children(children)))  # type: ignore


async def _resolve_suspense(node: SuspenseElement) -> object:
    try:
        return await _resolve(node.children)

    except DependencySignal as signal:
        _track_suspension(signal)
        logger.debug(
            'Suspense boundary rendering fallback for %s promise(s)',
            len(signal.promises))
        return await _resolve(node.fallback)


async def _resolve_error_boundary(node: ErrorBoundaryElement) -> object:
    try:
        return await _resolve(node.children)

    # This is the one thing an error boundary must never catch.
    except DependencySignal:
        raise

    except Exception as exc:
        logger.debug('Error boundary rendering fallback', exc_info=exc)
        if callable(node.fallback):
            fallback = node.fallback(exc)
        else:
            fallback = node.fallback

        return await _resolve(fallback)


async def _resolve_mapping(node: Mapping) -> dict:
    keys = list(node)
    values = await _fan_out([node[key] for key in keys])
    return {
        key: _unspread(value)
        for key, value in zip(keys, values, strict=True)}


async def _resolve_sequence(node: Sequence) -> list:
    resolved: list[object] = []
    for value in await _fan_out(node):
        if isinstance(value, _Spread):
            resolved.extend(value)
        else:
            resolved.append(value)

    return resolved


async def _fan_out(nodes: Sequence[object]) -> list[object]:
    """Resolves all of the passed nodes concurrently, returning them in
    their original order regardless of completion order. Every branch
    is started before any of them is joined.

    After all branches finish, if any of them failed with a normal
    exception, the first one (by position) is raised. Otherwise, if any
    of them suspended, a single dependency signal carrying all of the
    suspended promises is raised.
    """
    outcomes = [_BranchOutcome() for _ in nodes]

    async with create_task_group() as task_group:
        for outcome, node in zip(outcomes, nodes, strict=True):
            if _needs_resolution(node):
                task_group.start_soon(_resolve_branch, node, outcome)
            else:
                outcome.value = node

    failures = [outcome.exc for outcome in outcomes if outcome.exc is not None]
    if not failures:
        return [outcome.value for outcome in outcomes]

    errors = [
        exc for exc in failures if not isinstance(exc, DependencySignal)]
    if errors:
        if len(errors) > 1:
            logger.debug(
                'Discarding %s additional sibling failure(s)', len(errors) - 1)
        raise errors[0]

    suspended: list = []
    for signal in failures:
        # These are all DependencySignals; we checked above.
        suspended.extend(signal.promises)  # type: ignore
    raise DependencySignal(*suspended)


async def _resolve_branch(node: object, outcome: _BranchOutcome) -> None:
    try:
        outcome.value = await _resolve(node)
    except Exception as exc:
        outcome.exc = exc


def _needs_resolution(node: object) -> bool:
    if node is None or isinstance(node, _TERMINAL_TYPES):
        return False
    return (
        is_element(node)
        or isinstance(node, (Mapping, list, tuple)))


def _normalize_children(children: object) -> list[object]:
    """Flattens nested sequences of resolved children, drops empty
    values, and converts any remaining text into text nodes.
    """
    normalized: list[object] = []
    if isinstance(children, (list, tuple)):
        for child in children:
            normalized.extend(_normalize_children(child))
    # Bools must be checked before ints, since they're a subclass
    elif children is None or isinstance(children, bool):
        pass
    elif isinstance(children, str):
        if children:
            normalized.append(RenderedText(content=children))
    elif isinstance(children, (int, float)):
        normalized.append(RenderedText(content=str(children)))
    else:
        normalized.append(children)

    return normalized


def _unspread(value: object) -> object:
    if isinstance(value, _Spread):
        return list(value)
    return value


def _track_suspension(signal: DependencySignal) -> None:
    try:
        current = get_current_context()
    except NotRendering:
        return

    tracker = getattr(current, PROMISE_TRACKER_SLOT, None)
    if tracker is not None:
        cast(PromiseTracker, tracker).track_promises(signal.promises)
