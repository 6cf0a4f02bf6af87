"""Does some playtesty end-to-end API tests, exercising full render
sessions over realistic component trees.
"""
from __future__ import annotations

from contextlib import aclosing

import anyio
import pytest

from suspensive import RenderedIntrinsic
from suspensive import RenderedText
from suspensive import create_context
from suspensive import error_boundary
from suspensive import fragment
from suspensive import h
from suspensive import render_to_completion
from suspensive import render_to_stream
from suspensive import suspense
from suspensive import use_context
from suspensive import use_promise
from suspensive.exceptions import RejectedDependency

from suspensive_testutils import collect_passes
from suspensive_testutils import new_promise
from suspensive_testutils import settle_later


def _text(*contents: str) -> tuple[RenderedText, ...]:
    return tuple(RenderedText(content) for content in contents)


class TestApiE2E:

    @pytest.mark.anyio
    async def test_suspense_streaming(self):
        """A page with a suspended section must first stream the
        fallback, and then the resolved content, and then finish.
        """
        user_promise = new_promise()

        def user_name():
            user = use_promise(user_promise)
            return h('span', None, user['name'])

        def page():
            return h(
                'main', None,
                h('h1', None, 'Profile'),
                suspense(h(user_name), fallback=h('p', None, 'Loading...')))

        settle_later(user_promise, {'name': 'Ada'}, delay=.01)
        with anyio.fail_after(1):
            passes = await collect_passes(render_to_stream(h(page)))

        heading = RenderedIntrinsic(name='h1', children=_text('Profile'))
        assert passes == [
            RenderedIntrinsic(
                name='main',
                children=(
                    heading,
                    RenderedIntrinsic(name='p', children=_text('Loading...')))),
            RenderedIntrinsic(
                name='main',
                children=(
                    heading,
                    RenderedIntrinsic(name='span', children=_text('Ada'))))]

    @pytest.mark.anyio
    async def test_independent_boundaries(self):
        """Separate suspense boundaries must resolve independently of
        one another, each pass reflecting whatever has settled so far.
        """
        promise1 = new_promise()
        promise2 = new_promise()

        def section(promise):
            return use_promise(promise)

        tree = [
            suspense(h(section, {'promise': promise1}), fallback='loading 1'),
            ' and ',
            suspense(h(section, {'promise': promise2}), fallback='loading 2')]

        with anyio.fail_after(1):
            async with aclosing(render_to_stream(tree)) as stream:
                assert await anext(stream) == [
                    'loading 1', ' and ', 'loading 2']

                promise1.set_result('first')
                assert await anext(stream) == [
                    'first', ' and ', 'loading 2']

                promise2.set_result('second')
                assert await anext(stream) == [
                    'first', ' and ', 'second']

                with pytest.raises(StopAsyncIteration):
                    await anext(stream)

    @pytest.mark.anyio
    async def test_deeply_nested_suspension(self):
        """A grandchild suspending without any boundary must withhold
        the whole tree until it settles.
        """
        promise = new_promise()

        def grandchild():
            return use_promise(promise)

        async def child():
            await anyio.sleep(0)
            return h('li', None, h(grandchild))

        def parent():
            return h('ul', None, h(child), h('li', None, 'static'))

        settle_later(promise, 'dynamic', delay=.01)
        with anyio.fail_after(1):
            passes = await collect_passes(render_to_stream(h(parent)))

        assert passes == [
            RenderedIntrinsic(
                name='ul',
                children=(
                    RenderedIntrinsic(name='li', children=_text('dynamic')),
                    RenderedIntrinsic(name='li', children=_text('static'))))]

    @pytest.mark.anyio
    async def test_multiple_promises_in_one_component(self):
        """Components using several promises must eventually render
        once all of them have settled, regardless of settlement order.
        """
        promise1 = new_promise()
        promise2 = new_promise()

        def combined():
            return use_promise(promise1) + use_promise(promise2)

        settle_later(promise1, 'foo', delay=.02)
        settle_later(promise2, 'bar', delay=.01)
        with anyio.fail_after(1):
            result = await render_to_completion(h(combined))

        assert result == 'foobar'

    @pytest.mark.anyio
    async def test_error_boundary_with_rejection(self):
        """A rejected promise within an error boundary must render the
        boundary's fallback, leaving siblings intact.
        """
        promise = new_promise()

        def failing_section():
            return use_promise(promise)

        def fallback(exc):
            assert isinstance(exc, RejectedDependency)
            return h('p', None, f'Failed: {exc.reason}')

        tree = h(
            'div', None,
            error_boundary(
                suspense(h(failing_section), fallback='Loading...'),
                fallback=fallback),
            h('p', None, 'sibling'))

        settle_later(promise, delay=.01, exc=ValueError('nope'))
        with anyio.fail_after(1):
            passes = await collect_passes(render_to_stream(tree))

        assert passes == [
            RenderedIntrinsic(
                name='div',
                children=(
                    RenderedText('Loading...'),
                    RenderedIntrinsic(name='p', children=_text('sibling')))),
            RenderedIntrinsic(
                name='div',
                children=(
                    RenderedIntrinsic(name='p', children=_text('Failed: nope')),
                    RenderedIntrinsic(name='p', children=_text('sibling'))))]

    @pytest.mark.anyio
    async def test_fragments_in_list(self):
        def items():
            return fragment(h('li', None, 'a'), h('li', None, 'b'))

        result = await render_to_completion(
            h('ul', None, h(items), h('li', None, 'c')))

        assert result == RenderedIntrinsic(
            name='ul',
            children=(
                RenderedIntrinsic(name='li', children=_text('a')),
                RenderedIntrinsic(name='li', children=_text('b')),
                RenderedIntrinsic(name='li', children=_text('c'))))

    @pytest.mark.anyio
    async def test_provider_through_suspense(self):
        """Provided values must remain visible to components that
        suspend and are rendered again on a later pass.
        """
        theme = create_context('light')
        promise = new_promise()

        def themed_section():
            greeting = use_promise(promise)
            return f'{greeting} ({use_context(theme)})'

        tree = theme.provider(
            'dark',
            suspense(h(themed_section), fallback='loading'))

        settle_later(promise, 'hello', delay=.01)
        with anyio.fail_after(1):
            passes = await collect_passes(render_to_stream(tree))

        assert passes == ['loading', 'hello (dark)']

    @pytest.mark.anyio
    async def test_data_tree(self):
        """Plain data structures must be usable as roots, with any
        components within them resolved in place.
        """
        promise = new_promise()

        def price():
            return use_promise(promise)

        tree = {
            'title': 'Widget',
            'price': suspense(h(price), fallback=None),
            'tags': [fragment('new', 'sale'), 'popular']}

        settle_later(promise, 9.99, delay=.01)
        with anyio.fail_after(1):
            passes = await collect_passes(render_to_stream(tree))

        assert passes == [
            {
                'title': 'Widget',
                'price': None,
                'tags': ['new', 'sale', 'popular']},
            {
                'title': 'Widget',
                'price': 9.99,
                'tags': ['new', 'sale', 'popular']}]
