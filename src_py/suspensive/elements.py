"""Elements are the nodes of the input tree. They form a closed set:
the resolver switches on the concrete element type, and anything that
isn't an element is either a data node (mappings, lists, tuples) that
gets walked, or a terminal value that passes through unchanged.
"""
from __future__ import annotations

from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from dataclasses import field
from typing import Annotated
from typing import Any

from docnote import Note
from typing_extensions import TypeIs

# Components are called with their props as keyword arguments, and may be
# either sync or async.
type Component = Callable[..., Any]
type ErrorFallback = Callable[[Exception], object]


@dataclass(frozen=True, slots=True)
class ComponentElement:
    component: Component
    props: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class IntrinsicElement:
    """A host node. These are never called; they resolve into a
    ``RenderedIntrinsic`` with resolved props and normalized children.
    """
    name: str
    props: Mapping[str, object] = field(default_factory=dict)
    children: tuple[object, ...] = ()


@dataclass(frozen=True, slots=True)
class Fragment:
    """Groups sibling nodes without a wrapping container. When resolved
    within a sequence, the children are spliced into the parent.
    """
    children: tuple[object, ...] = ()


@dataclass(frozen=True, slots=True)
class SuspenseElement:
    children: object
    fallback: Annotated[
        object,
        Note('''Rendered in place of the children for any pass in which the
            children suspend on an unsettled promise.''')] = None


@dataclass(frozen=True, slots=True)
class ErrorBoundaryElement:
    children: object
    fallback: Annotated[
        ErrorFallback | object,
        Note('''Either a callable accepting the caught exception and
            returning a node, or a node to render as-is. Only used when the
            children raise something other than a dependency signal.''')
        ] = None


@dataclass(frozen=True, slots=True)
class ProviderElement:
    context: TreeContext
    value: object
    children: object


type Element = (
    ComponentElement
    | IntrinsicElement
    | Fragment
    | SuspenseElement
    | ErrorBoundaryElement
    | ProviderElement)
ELEMENT_TYPES = (
    ComponentElement,
    IntrinsicElement,
    Fragment,
    SuspenseElement,
    ErrorBoundaryElement,
    ProviderElement)


@dataclass(frozen=True, slots=True)
class RenderedIntrinsic:
    name: str
    props: dict[str, object] = field(default_factory=dict)
    children: tuple[RenderedNode, ...] = ()


@dataclass(frozen=True, slots=True)
class RenderedText:
    content: str


type RenderedNode = RenderedIntrinsic | RenderedText | object


def is_element(value: object) -> TypeIs[Element]:
    return isinstance(value, ELEMENT_TYPES)


class TreeContext[T]:
    """A value that can be provided to an entire subtree, without
    threading it through props. Create one with ``create_context``,
    provide it with ``TreeContext.provider``, and read it from within a
    component using ``use_context``.

    Unlike the render context, these may be nested freely; the nearest
    enclosing provider wins.
    """
    default: T
    _var: ContextVar[T]

    def __init__(self, default: T, *, name: str = 'tree_context'):
        self.default = default
        self._var = ContextVar(name)

    def provider(self, value: T, *children: object) -> ProviderElement:
        return ProviderElement(
            context=self,
            value=value,
            children=_collapse_children(children))

    def get(self) -> T:
        return self._var.get(self.default)

    @contextmanager
    def providing(self, value: T) -> Iterator[None]:
        ctx_token = self._var.set(value)
        try:
            yield
        finally:
            self._var.reset(ctx_token)


def create_context[T](
        default: T,
        *,
        name: str = 'tree_context'
        ) -> TreeContext[T]:
    return TreeContext(default, name=name)


def h(
        tag: str | Component,
        props: Mapping[str, object] | None = None,
        *children: object
        ) -> ComponentElement | IntrinsicElement:
    """Creates an element. String tags create intrinsic elements;
    anything else is treated as a component.

    For components, positional children are passed in as the
    ``children`` prop: a single child as-is, multiple children as a
    tuple. For intrinsic elements, a ``children`` prop is only used if
    there are no positional children.
    """
    props = {} if props is None else dict(props)

    if isinstance(tag, str):
        prop_children = props.pop('children', None)
        if children:
            intrinsic_children = children
        elif prop_children is None:
            intrinsic_children = ()
        elif isinstance(prop_children, (list, tuple)):
            intrinsic_children = tuple(prop_children)
        else:
            intrinsic_children = (prop_children,)

        return IntrinsicElement(
            name=tag,
            props=props,
            children=intrinsic_children)

    if children:
        props['children'] = _collapse_children(children)

    return ComponentElement(component=tag, props=props)


def fragment(*children: object) -> Fragment:
    return Fragment(children=children)


def suspense(*children: object, fallback: object = None) -> SuspenseElement:
    return SuspenseElement(
        children=_collapse_children(children),
        fallback=fallback)


def error_boundary(
        *children: object,
        fallback: ErrorFallback | object = None
        ) -> ErrorBoundaryElement:
    return ErrorBoundaryElement(
        children=_collapse_children(children),
        fallback=fallback)


def _collapse_children(children: tuple[object, ...]) -> object:
    if len(children) == 1:
        return children[0]
    else:
        return children
