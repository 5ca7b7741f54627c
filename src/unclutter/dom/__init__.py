"""Virtual browser DOM built on lxml."""

from unclutter.dom.css import CSSStyleDeclaration, CSSStyleSheet, compute_style
from unclutter.dom.elements import Element, load_document
from unclutter.dom.selection import Range, Selection
from unclutter.dom.setup import create_window, setup_dom_interfaces
from unclutter.dom.window import Storage, Window

__all__ = [
    "CSSStyleDeclaration",
    "CSSStyleSheet",
    "Element",
    "Range",
    "Selection",
    "Storage",
    "Window",
    "compute_style",
    "create_window",
    "load_document",
    "setup_dom_interfaces",
]
