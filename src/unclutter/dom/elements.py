"""Element interfaces for the virtual document.

lxml gives us a fast HTML tree but none of the browser element interfaces
extraction code tends to reach for. Each tag is mapped to an interface class
(a subclass of ``lxml.html.HtmlElement``) exposing the typed properties of
its browser counterpart. lxml element proxies cannot hold state, so every
property reads straight from the underlying attributes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Iterator
from urllib.parse import urljoin, urlparse

from lxml import etree, html
from lxml.cssselect import CSSSelector, SelectorError


@lru_cache(maxsize=None)
def compile_selector(selector: str) -> CSSSelector | None:
    """Compile a CSS selector, or return None when it is invalid."""
    try:
        return CSSSelector(selector, translator="html")
    except SelectorError:
        return None


def _int_attr(element: etree._Element, name: str, default: int = 0) -> int:
    value = element.get(name)
    if value is None:
        return default
    try:
        return int(value.strip().rstrip("px"))
    except ValueError:
        return default


@dataclass
class DOMRect:
    """Geometry of an element. Nothing is laid out, so it is always empty."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0

    def to_json(self) -> dict:
        return asdict(self)


class DOMTokenList:
    """Live view over a whitespace-separated attribute such as ``class``."""

    def __init__(self, element: etree._Element, attribute: str,
                 supported: frozenset[str] | None = None):
        self._element = element
        self._attribute = attribute
        self._supported = supported

    def _tokens(self) -> list[str]:
        return (self._element.get(self._attribute) or "").split()

    def _store(self, tokens: list[str]) -> None:
        self._element.set(self._attribute, " ".join(tokens))

    @property
    def value(self) -> str:
        return self._element.get(self._attribute) or ""

    @value.setter
    def value(self, value: str) -> None:
        self._element.set(self._attribute, value)

    def __len__(self) -> int:
        return len(self._tokens())

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens())

    def __contains__(self, token: str) -> bool:
        return token in self._tokens()

    def item(self, index: int) -> str | None:
        tokens = self._tokens()
        return tokens[index] if 0 <= index < len(tokens) else None

    def contains(self, token: str) -> bool:
        return token in self

    def add(self, *tokens: str) -> None:
        current = self._tokens()
        current.extend(t for t in tokens if t not in current)
        self._store(current)

    def remove(self, *tokens: str) -> None:
        self._store([t for t in self._tokens() if t not in tokens])

    def toggle(self, token: str, force: bool | None = None) -> bool:
        present = token in self
        if force is None:
            force = not present
        if force and not present:
            self.add(token)
        elif not force and present:
            self.remove(token)
        return force

    def replace(self, old: str, new: str) -> bool:
        tokens = self._tokens()
        if old not in tokens:
            return False
        self._store([new if t == old else t for t in tokens])
        return True

    def supports(self, token: str) -> bool:
        if self._supported is None:
            raise TypeError(f"{self._attribute!r} has no supported tokens")
        return token.lower() in self._supported

    def __str__(self) -> str:
        return self.value


class Element(html.HtmlElement):
    """Base interface shared by every element in the virtual document."""

    @property
    def hidden(self) -> bool:
        return self.get("hidden") is not None

    @property
    def class_list(self) -> DOMTokenList:
        return DOMTokenList(self, "class")

    @property
    def tag_name(self) -> str:
        return self.tag.upper() if isinstance(self.tag, str) else ""

    def contains(self, node: etree._Element | None) -> bool:
        current = node
        while current is not None:
            if current is self:
                return True
            current = current.getparent()
        return False

    def matches(self, selector: str) -> bool:
        compiled = compile_selector(selector)
        if compiled is None:
            return False
        return any(el is self for el in compiled(self.getroottree()))

    def closest(self, selector: str) -> Element | None:
        if self.matches(selector):
            return self
        for ancestor in self.iterancestors():
            if isinstance(ancestor, Element) and ancestor.matches(selector):
                return ancestor
        return None

    def get_elements_by_class_name(self, names: str) -> list[Element]:
        wanted = set(names.split())
        if not wanted:
            return []
        return [
            el for el in self.iterdescendants()
            if isinstance(el.tag, str) and wanted <= set((el.get("class") or "").split())
        ]

    def get_bounding_client_rect(self) -> DOMRect:
        return DOMRect()

    def get_client_rects(self) -> list[DOMRect]:
        return []


# --- Interface registry ---

_interfaces: dict[str, type[Element]] = {}


def interface(*tags: str):
    """Class decorator binding an interface to one or more tag names."""

    def decorator(cls: type[Element]) -> type[Element]:
        for tag in tags:
            _interfaces[tag] = cls
        return cls

    return decorator


def interface_for(tag: str) -> type[Element]:
    """Return the interface class used for ``tag``."""
    return _interfaces.get(tag.lower(), Element)


def list_interfaces() -> dict[str, str]:
    """Return {tag: interface name} for every registered tag."""
    return {tag: cls.__name__ for tag, cls in sorted(_interfaces.items())}


@interface("img")
class HTMLImageElement(Element):
    @property
    def src(self) -> str:
        return self.get("src") or ""

    @src.setter
    def src(self, value: str) -> None:
        self.set("src", value)

    @property
    def srcset(self) -> str:
        return self.get("srcset") or ""

    @property
    def sizes(self) -> str:
        return self.get("sizes") or ""

    @property
    def alt(self) -> str:
        return self.get("alt") or ""

    @property
    def width(self) -> int:
        return _int_attr(self, "width")

    @property
    def height(self) -> int:
        return _int_attr(self, "height")

    # Images are never fetched, so there is no intrinsic size.
    natural_width = 0
    natural_height = 0
    complete = False

    @property
    def current_src(self) -> str:
        return self.src

    @property
    def loading(self) -> str:
        return self.get("loading") or "eager"

    @property
    def decoding(self) -> str:
        return self.get("decoding") or "auto"

    def decode(self) -> None:
        return None


@interface("a", "area")
class HTMLAnchorElement(Element):
    @property
    def href(self) -> str:
        raw = self.get("href")
        if raw is None:
            return ""
        return urljoin(self.base_url or "", raw.strip())

    @property
    def hostname(self) -> str:
        return urlparse(self.href).hostname or ""

    @property
    def rel_list(self) -> DOMTokenList:
        return DOMTokenList(self, "rel")

    @property
    def target(self) -> str:
        return self.get("target") or ""


_SANDBOX_TOKENS = frozenset({
    "allow-downloads", "allow-forms", "allow-modals", "allow-orientation-lock",
    "allow-pointer-lock", "allow-popups", "allow-popups-to-escape-sandbox",
    "allow-presentation", "allow-same-origin", "allow-scripts",
    "allow-top-navigation", "allow-top-navigation-by-user-activation",
})


@interface("iframe")
class HTMLIFrameElement(Element):
    @property
    def src(self) -> str:
        return self.get("src") or ""

    @property
    def srcdoc(self) -> str:
        return self.get("srcdoc") or ""

    @property
    def allow(self) -> str:
        return self.get("allow") or ""

    @property
    def allow_fullscreen(self) -> bool:
        return self.get("allowfullscreen") is not None

    @property
    def sandbox(self) -> DOMTokenList:
        return DOMTokenList(self, "sandbox", supported=_SANDBOX_TOKENS)

    @property
    def width(self) -> str:
        return self.get("width") or ""

    @property
    def height(self) -> str:
        return self.get("height") or ""

    content_document = None
    content_window = None


@interface("ol")
class HTMLOListElement(Element):
    @property
    def start(self) -> int:
        return _int_attr(self, "start", default=1)

    @property
    def reversed(self) -> bool:
        return self.get("reversed") is not None

    @property
    def type(self) -> str:
        return self.get("type") or ""


def _children(element: etree._Element, *tags: str) -> list[Element]:
    return [child for child in element if child.tag in tags]


@interface("table")
class HTMLTableElement(Element):
    @property
    def caption(self) -> Element | None:
        found = _children(self, "caption")
        return found[0] if found else None

    @property
    def t_head(self) -> Element | None:
        found = _children(self, "thead")
        return found[0] if found else None

    @property
    def t_foot(self) -> Element | None:
        found = _children(self, "tfoot")
        return found[0] if found else None

    @property
    def t_bodies(self) -> list[Element]:
        return _children(self, "tbody")

    @property
    def rows(self) -> list[Element]:
        """Rows in document order: header rows, body rows, then footer rows."""
        head, body, foot = [], [], []
        for child in self:
            if child.tag == "thead":
                head.extend(_children(child, "tr"))
            elif child.tag == "tfoot":
                foot.extend(_children(child, "tr"))
            elif child.tag == "tbody":
                body.extend(_children(child, "tr"))
            elif child.tag == "tr":
                body.append(child)
        return head + body + foot


@interface("thead", "tbody", "tfoot")
class HTMLTableSectionElement(Element):
    @property
    def rows(self) -> list[Element]:
        return _children(self, "tr")


@interface("tr")
class HTMLTableRowElement(Element):
    @property
    def cells(self) -> list[Element]:
        return _children(self, "td", "th")

    @property
    def row_index(self) -> int:
        for ancestor in self.iterancestors("table"):
            rows = ancestor.rows if isinstance(ancestor, HTMLTableElement) else []
            for index, row in enumerate(rows):
                if row is self:
                    return index
            break
        return -1

    @property
    def section_row_index(self) -> int:
        parent = self.getparent()
        if parent is None:
            return -1
        for index, row in enumerate(_children(parent, "tr")):
            if row is self:
                return index
        return -1


@interface("td", "th")
class HTMLTableCellElement(Element):
    @property
    def col_span(self) -> int:
        return max(1, _int_attr(self, "colspan", default=1))

    @property
    def row_span(self) -> int:
        return max(0, _int_attr(self, "rowspan", default=1))

    @property
    def headers(self) -> DOMTokenList:
        return DOMTokenList(self, "headers")

    @property
    def scope(self) -> str:
        return self.get("scope") or ""

    @property
    def cell_index(self) -> int:
        parent = self.getparent()
        if parent is None or parent.tag != "tr":
            return -1
        for index, cell in enumerate(_children(parent, "td", "th")):
            if cell is self:
                return index
        return -1


@interface("svg", "g", "path", "circle", "rect", "line", "polyline", "polygon",
           "ellipse", "text", "use", "defs", "symbol")
class SVGElement(Element):
    @property
    def owner_svg_element(self) -> Element | None:
        for ancestor in self.iterancestors("svg"):
            return ancestor
        return None

    @property
    def viewport_element(self) -> Element | None:
        return self.owner_svg_element

    @property
    def class_name(self) -> str:
        return self.get("class") or ""


# --- Parsing ---


class InterfaceLookup(html.HtmlElementClassLookup):
    """Pick an interface class for each parsed element by its tag name."""

    def lookup(self, node_type, document, namespace, name):
        if node_type == "element":
            return interface_for(name)
        return super().lookup(node_type, document, namespace, name)


_parser = etree.HTMLParser()
_parser.set_element_class_lookup(InterfaceLookup())


def load_document(markup: str | bytes, url: str | None = None) -> Element:
    """Parse HTML into a virtual document and return its root element.

    Raises:
        ValueError: If the markup is empty.
    """
    if not markup or not markup.strip():
        raise ValueError("Document is empty")
    # lxml refuses str input that carries an XML encoding declaration.
    if isinstance(markup, str) and markup.lstrip().startswith("<?xml"):
        markup = markup.encode("utf-8")
    return html.document_fromstring(markup, parser=_parser, base_url=url)
