import pytest

from suspensive._context import get_current_context
from suspensive.exceptions import NotRendering


def pytest_collection_modifyitems(config, items):
    # We use this to re-order items inplace so that unittests are run first,
    # then integr8, then e2e
    items.sort(key=_sort_by_test_phase)


_TEST_PHASES: dict[None | str, int] = {
    None: 0,
    'integr8': 1,
    'e2e': 2,
}


def _sort_by_test_phase(item: pytest.Item):
    """Use this as a sorting key divide the collected tests up into
    phases, based on _TEST_PHASES. The goal here is to run the tests
    starting with the fastest phase first, and then proceed onto the
    slower phases.
    """
    test_fs_path = item.path
    if test_fs_path is None:
        return _TEST_PHASES[None]

    suffixes = {suffix.lstrip('.') for suffix in test_fs_path.suffixes}
    maybe_phase_name = suffixes.intersection(_TEST_PHASES)

    if maybe_phase_name:
        try:
            phase_name, = maybe_phase_name
        except ValueError as exc:
            exc.add_note(
                'Apparently you have a test file with multiple phases?')
            raise exc

        return _TEST_PHASES[phase_name]

    else:
        return _TEST_PHASES[None]


@pytest.fixture
def anyio_backend():
    """Promises are asyncio futures, so everything needs to run on the
    asyncio backend.
    """
    return 'asyncio'


@pytest.fixture(autouse=True, scope='function')
def ensure_no_leaked_render_context():
    """Makes sure that no test function leaves a render context
    installed behind it, regardless of how it exited.
    """
    yield
    with pytest.raises(NotRendering):
        get_current_context()
