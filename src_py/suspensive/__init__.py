from docnote import DocnoteConfig
from docnote import MarkupLang

from suspensive._context import PROMISE_STATE_SLOT
from suspensive._context import PROMISE_TRACKER_SLOT
from suspensive._context import RERENDER_SIGNAL_SLOT
from suspensive._context import RenderContext
from suspensive._context import get_current_context
from suspensive._context import run_in_context
from suspensive._context import run_in_context_async
from suspensive._promise_state import PromiseState
from suspensive._promise_state import PromiseStateManager
from suspensive._promise_state import create_promise_state_manager
from suspensive._rerender import RerenderSignal
from suspensive._rerender import create_rerender_signal
from suspensive._resolver import resolve_tree
from suspensive._tracker import PromiseTracker
from suspensive._tracker import create_promise_tracker
from suspensive.elements import ComponentElement
from suspensive.elements import ErrorBoundaryElement
from suspensive.elements import Fragment
from suspensive.elements import IntrinsicElement
from suspensive.elements import ProviderElement
from suspensive.elements import RenderedIntrinsic
from suspensive.elements import RenderedText
from suspensive.elements import SuspenseElement
from suspensive.elements import TreeContext
from suspensive.elements import create_context
from suspensive.elements import error_boundary
from suspensive.elements import fragment
from suspensive.elements import h
from suspensive.elements import suspense
from suspensive.hooks import get_rerender_signal
from suspensive.hooks import use
from suspensive.hooks import use_context
from suspensive.hooks import use_promise
from suspensive.hooks import use_rerender
from suspensive.renderer import RenderConfig
from suspensive.renderer import RenderLifecycleCallbacks
from suspensive.renderer import RenderLifecycleHelpers
from suspensive.renderer import RenderSession
from suspensive.renderer import SessionState
from suspensive.renderer import render_to_completion
from suspensive.renderer import render_to_stream

__all__ = [
    'PROMISE_STATE_SLOT',
    'PROMISE_TRACKER_SLOT',
    'RERENDER_SIGNAL_SLOT',
    'ComponentElement',
    'ErrorBoundaryElement',
    'Fragment',
    'IntrinsicElement',
    'PromiseState',
    'PromiseStateManager',
    'PromiseTracker',
    'ProviderElement',
    'RenderConfig',
    'RenderContext',
    'RenderLifecycleCallbacks',
    'RenderLifecycleHelpers',
    'RenderSession',
    'RenderedIntrinsic',
    'RenderedText',
    'RerenderSignal',
    'SessionState',
    'SuspenseElement',
    'TreeContext',
    'create_context',
    'create_promise_state_manager',
    'create_promise_tracker',
    'create_rerender_signal',
    'error_boundary',
    'fragment',
    'get_current_context',
    'get_rerender_signal',
    'h',
    'render_to_completion',
    'render_to_stream',
    'resolve_tree',
    'run_in_context',
    'run_in_context_async',
    'suspense',
    'use',
    'use_context',
    'use_promise',
    'use_rerender',
]


DOCNOTE_CONFIG = DocnoteConfig(markup_lang=MarkupLang.CLEANCOPY)
