"""Installers that give a bare window the browser interfaces it lacks.

Each installer checks for the capability first and leaves anything already
present alone. Installers run in registration order; one that fails is
logged and skipped so the rest still get a chance.
"""

from __future__ import annotations

import logging
from typing import Callable

from unclutter.dom import css
from unclutter.dom.elements import Element, interface_for, list_interfaces, load_document
from unclutter.dom.selection import Range, Selection
from unclutter.dom.window import AnimationFrames, Screen, Storage, Window

logger = logging.getLogger(__name__)

DEFAULT_INNER_WIDTH = 1024
DEFAULT_INNER_HEIGHT = 768
DEFAULT_DEVICE_PIXEL_RATIO = 1

Installer = Callable[[Window], None]

# --- Installer Registry ---

_installers: dict[str, Installer] = {}


def installer(name: str) -> Callable[[Installer], Installer]:
    """Decorator to register an installer under a human-readable name."""

    def decorator(fn: Installer) -> Installer:
        _installers[name] = fn
        return fn

    return decorator


def list_installers() -> list[str]:
    """Installer names in the order they run."""
    return list(_installers)


def _define(target, name: str, value) -> bool:
    """Set ``target.name`` unless it is already defined."""
    if getattr(target, name, None) is not None:
        return False
    setattr(target, name, value)
    return True


def _patch_methods(document, names: tuple[str, ...]) -> None:
    """Copy missing element methods onto the document's element class."""
    cls = type(document)
    for name in names:
        if not hasattr(cls, name):
            setattr(cls, name, Element.__dict__[name])
            logger.debug("Installed %s on %s", name, cls.__name__)


@installer("basic window")
def setup_basic_window(window: Window) -> None:
    _define(window, "inner_width", DEFAULT_INNER_WIDTH)
    _define(window, "inner_height", DEFAULT_INNER_HEIGHT)
    _define(window, "device_pixel_ratio", DEFAULT_DEVICE_PIXEL_RATIO)


@installer("CSS interfaces")
def setup_css_interfaces(window: Window) -> None:
    for cls in (css.CSSRule, css.CSSStyleRule, css.CSSMediaRule, css.CSSStyleSheet):
        _define(window, cls.__name__, cls)
    if getattr(window, "style_sheets", None) is None:
        sheets = []
        for node in window.document.iter("style"):
            sheets.append(css.CSSStyleSheet(
                node.text or "",
                owner_node=node,
                media=node.get("media") or "",
                title=node.get("title"),
            ))
        window.style_sheets = sheets
        logger.debug("Parsed %d style sheet(s)", len(sheets))


@installer("HTML and SVG interfaces")
def setup_html_and_svg(window: Window) -> None:
    for tag, name in list_interfaces().items():
        _define(window, name, interface_for(tag))
    _define(window, "HTMLElement", Element)


@installer("screen object")
def setup_screen(window: Window) -> None:
    _define(window, "screen", Screen())


@installer("storage objects")
def setup_storage(window: Window) -> None:
    _define(window, "local_storage", Storage())
    _define(window, "session_storage", Storage())


@installer("animation frame methods")
def setup_animation_frame(window: Window) -> None:
    if getattr(window, "request_animation_frame", None) is not None:
        return
    frames = AnimationFrames()
    window.animation_frames = frames
    window.request_animation_frame = frames.request
    _define(window, "cancel_animation_frame", frames.cancel)
    _define(window, "run_animation_frames", frames.run)


@installer("DOM methods")
def setup_dom_methods(window: Window) -> None:
    _patch_methods(window.document, ("get_elements_by_class_name",))


@installer("Node methods")
def setup_node_methods(window: Window) -> None:
    _patch_methods(window.document, ("contains",))


@installer("Element methods")
def setup_element_methods(window: Window) -> None:
    _patch_methods(window.document, (
        "get_bounding_client_rect", "get_client_rects", "matches", "closest",
    ))


@installer("Document methods")
def setup_document_methods(window: Window) -> None:
    _define(window, "Range", Range)

    def get_selection() -> Selection:
        return Selection(window.document)

    _define(window, "get_selection", get_selection)


@installer("Window methods")
def setup_window_methods(window: Window) -> None:

    def get_computed_style(element: Element, pseudo_element: str | None = None):
        return css.compute_style(window, element)

    _define(window, "get_computed_style", get_computed_style)


def setup_dom_interfaces(window: Window) -> list[str]:
    """Run every installer against ``window``.

    Never raises: a failing installer is logged as a warning.

    Returns:
        Names of the installers that completed.
    """
    completed = []
    for name, install in _installers.items():
        try:
            install(window)
        except Exception as e:
            logger.warning("Could not set up %s: %s", name, e)
            continue
        completed.append(name)
    return completed


def create_window(markup: str | bytes, url: str | None = None) -> Window:
    """Load markup into a fresh window with every interface installed."""
    window = Window(load_document(markup, url=url), url=url)
    setup_dom_interfaces(window)
    return window
