"""CSS object model and computed style for the virtual window."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator

from unclutter.dom.elements import Element, compile_selector

logger = logging.getLogger(__name__)


class CSSRule:
    """A rule in a style sheet. Unmodelled at-rules stay plain ``CSSRule``."""

    STYLE_RULE = 1
    CHARSET_RULE = 2
    IMPORT_RULE = 3
    MEDIA_RULE = 4
    FONT_FACE_RULE = 5
    PAGE_RULE = 6
    KEYFRAMES_RULE = 7
    KEYFRAME_RULE = 8
    NAMESPACE_RULE = 10
    COUNTER_STYLE_RULE = 11
    SUPPORTS_RULE = 12
    DOCUMENT_RULE = 13
    FONT_FEATURE_VALUES_RULE = 14
    VIEWPORT_RULE = 15
    REGION_STYLE_RULE = 16

    def __init__(self, type: int = STYLE_RULE, css_text: str = ""):
        self.type = type
        self.css_text = css_text
        self.parent_rule: CSSRule | None = None
        self.parent_style_sheet: CSSStyleSheet | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} type={self.type}>"


# at-rule name -> rule type
_AT_RULE_TYPES = {
    "charset": CSSRule.CHARSET_RULE,
    "import": CSSRule.IMPORT_RULE,
    "media": CSSRule.MEDIA_RULE,
    "font-face": CSSRule.FONT_FACE_RULE,
    "page": CSSRule.PAGE_RULE,
    "keyframes": CSSRule.KEYFRAMES_RULE,
    "namespace": CSSRule.NAMESPACE_RULE,
    "counter-style": CSSRule.COUNTER_STYLE_RULE,
    "supports": CSSRule.SUPPORTS_RULE,
    "document": CSSRule.DOCUMENT_RULE,
    "font-feature-values": CSSRule.FONT_FEATURE_VALUES_RULE,
    "viewport": CSSRule.VIEWPORT_RULE,
}


class CSSStyleDeclaration:
    """An ordered set of CSS property declarations."""

    def __init__(self, css_text: str = ""):
        self._props: dict[str, tuple[str, str]] = {}
        self.parent_rule: CSSRule | None = None
        if css_text:
            self.css_text = css_text

    @property
    def css_text(self) -> str:
        parts = []
        for name, (value, priority) in self._props.items():
            suffix = " !important" if priority else ""
            parts.append(f"{name}: {value}{suffix};")
        return " ".join(parts)

    @css_text.setter
    def css_text(self, text: str) -> None:
        self._props.clear()
        for name, value, priority in parse_declarations(text):
            self._props[name] = (value, priority)

    def __len__(self) -> int:
        return len(self._props)

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __contains__(self, name: str) -> bool:
        return _normalize_name(name) in self._props

    def items(self) -> Iterator[tuple[str, str, str]]:
        for name, (value, priority) in self._props.items():
            yield name, value, priority

    def item(self, index: int) -> str:
        names = list(self._props)
        return names[index] if 0 <= index < len(names) else ""

    def get_property_value(self, name: str) -> str:
        return self._props.get(_normalize_name(name), ("", ""))[0]

    def get_property_priority(self, name: str) -> str:
        return self._props.get(_normalize_name(name), ("", ""))[1]

    def set_property(self, name: str, value: str | None, priority: str = "") -> None:
        name = _normalize_name(name)
        if not value:
            self._props.pop(name, None)
            return
        self._props[name] = (value.strip(), "important" if priority else "")

    def remove_property(self, name: str) -> str:
        old = self.get_property_value(name)
        self._props.pop(_normalize_name(name), None)
        return old

    def __repr__(self) -> str:
        return f"CSSStyleDeclaration({self.css_text!r})"


class CSSStyleRule(CSSRule):
    def __init__(self, selector_text: str, style: CSSStyleDeclaration):
        super().__init__(CSSRule.STYLE_RULE)
        self.selector_text = selector_text
        self.style = style
        style.parent_rule = self

    @property
    def css_text(self) -> str:
        return f"{self.selector_text} {{ {self.style.css_text} }}"

    @css_text.setter
    def css_text(self, value: str) -> None:
        # Assigned by CSSRule.__init__; style rules derive their text.
        pass


class MediaList:
    """The media queries a sheet or ``@media`` rule applies to."""

    def __init__(self, media_text: str = ""):
        self._media: list[str] = []
        self.media_text = media_text

    @property
    def media_text(self) -> str:
        return ", ".join(self._media)

    @media_text.setter
    def media_text(self, text: str) -> None:
        self._media = [m.strip() for m in (text or "").split(",") if m.strip()]

    def __len__(self) -> int:
        return len(self._media)

    def __iter__(self) -> Iterator[str]:
        return iter(self._media)

    def item(self, index: int) -> str | None:
        return self._media[index] if 0 <= index < len(self._media) else None

    def append_medium(self, medium: str) -> None:
        if medium not in self._media:
            self._media.append(medium)

    def delete_medium(self, medium: str) -> None:
        if medium not in self._media:
            raise ValueError(f"Medium not in list: {medium!r}")
        self._media.remove(medium)

    def __str__(self) -> str:
        return self.media_text


class _RuleContainer:
    """Shared rule-list handling for style sheets and grouping rules."""

    css_rules: list[CSSRule]

    def _adopt(self, rule: CSSRule) -> None:
        raise NotImplementedError

    def insert_rule(self, rule: str, index: int = 0) -> int:
        if not 0 <= index <= len(self.css_rules):
            raise IndexError(f"Rule index {index} out of range")
        parsed = parse_stylesheet(rule)
        if len(parsed) != 1:
            raise ValueError(f"Expected exactly one rule, got {len(parsed)}: {rule!r}")
        self._adopt(parsed[0])
        self.css_rules.insert(index, parsed[0])
        return index

    def delete_rule(self, index: int) -> None:
        if not 0 <= index < len(self.css_rules):
            raise IndexError(f"Rule index {index} out of range")
        del self.css_rules[index]


class CSSMediaRule(CSSRule, _RuleContainer):
    def __init__(self, media_text: str, rules: list[CSSRule] | None = None):
        CSSRule.__init__(self, CSSRule.MEDIA_RULE)
        self.media = MediaList(media_text)
        self.css_rules = []
        for rule in rules or []:
            self._adopt(rule)
            self.css_rules.append(rule)

    @property
    def condition_text(self) -> str:
        return self.media.media_text

    @property
    def css_text(self) -> str:
        inner = " ".join(rule.css_text for rule in self.css_rules)
        return f"@media {self.media.media_text} {{ {inner} }}"

    @css_text.setter
    def css_text(self, value: str) -> None:
        pass

    def _adopt(self, rule: CSSRule) -> None:
        rule.parent_rule = self
        rule.parent_style_sheet = self.parent_style_sheet


class CSSStyleSheet(_RuleContainer):
    """A parsed style sheet, usually the content of a ``<style>`` element."""

    type = "text/css"

    def __init__(self, text: str = "", owner_node: Element | None = None,
                 href: str | None = None, media: str = "", title: str | None = None):
        self.owner_node = owner_node
        self.href = href
        self.title = title
        self.media = MediaList(media)
        self.disabled = False
        self.parent_style_sheet = None
        self.owner_rule = None
        self.css_rules: list[CSSRule] = []
        self.replace_sync(text)

    @property
    def rules(self) -> list[CSSRule]:
        return self.css_rules

    def replace_sync(self, text: str) -> None:
        self.css_rules = []
        for rule in parse_stylesheet(text):
            self._adopt(rule)
            self.css_rules.append(rule)

    def _adopt(self, rule: CSSRule) -> None:
        rule.parent_style_sheet = self
        if isinstance(rule, CSSMediaRule):
            for child in rule.css_rules:
                child.parent_style_sheet = self

    def __repr__(self) -> str:
        return f"<CSSStyleSheet rules={len(self.css_rules)}>"


# --- Parsing ---

_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_IMPORTANT = re.compile(r"\s*!\s*important\s*$", re.IGNORECASE)
_AT_PRELUDE = re.compile(r"@([-\w]+)\s*(.*)$", re.DOTALL)


def _normalize_name(name: str) -> str:
    name = name.strip()
    return name if name.startswith("--") else name.lower()


def _split_top_level(text: str, sep: str) -> list[str]:
    """Split on ``sep`` outside parentheses and quotes."""
    parts, depth, quote, start = [], 0, "", 0
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == sep and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def parse_declarations(text: str) -> list[tuple[str, str, str]]:
    """Parse ``a: b; c: d !important`` into (name, value, priority) triples."""
    text = _COMMENT.sub("", text or "")
    result = []
    for chunk in _split_top_level(text, ";"):
        name, colon, value = chunk.partition(":")
        if not colon or not name.strip() or not value.strip():
            continue
        priority = ""
        if _IMPORTANT.search(value):
            value = _IMPORTANT.sub("", value)
            priority = "important"
        result.append((_normalize_name(name), value.strip(), priority))
    return result


def _matching_brace(text: str, open_pos: int) -> int:
    """Index of the brace closing the one at ``open_pos``, or len(text)."""
    depth, quote = 0, ""
    for i in range(open_pos, len(text)):
        ch = text[i]
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return len(text)


def _at_rule(prelude: str, body: str | None) -> CSSRule:
    m = _AT_PRELUDE.match(prelude)
    name, condition = (m.group(1).lower(), m.group(2)) if m else ("", "")
    # Vendor-prefixed variants share the unprefixed type.
    bare = re.sub(r"^-[a-z]+-", "", name)
    if bare == "media" and body is not None:
        return CSSMediaRule(condition.strip(), _parse_rules(body))
    rule_type = _AT_RULE_TYPES.get(bare, 0)
    css_text = prelude if body is None else f"{prelude} {{{body}}}"
    return CSSRule(rule_type, css_text.strip())


def _parse_rules(text: str) -> list[CSSRule]:
    rules: list[CSSRule] = []
    pos, end = 0, len(text)
    while pos < end:
        while pos < end and (text[pos].isspace() or text[pos] in ";}"):
            pos += 1
        if text.startswith("<!--", pos) or text.startswith("-->", pos):
            pos += 4 if text.startswith("<!--", pos) else 3
            continue
        if pos >= end:
            break
        brace = text.find("{", pos)
        if text[pos] == "@":
            semi = text.find(";", pos)
            if semi != -1 and (brace == -1 or semi < brace):
                rules.append(_at_rule(text[pos:semi].strip(), None))
                pos = semi + 1
                continue
        if brace == -1:
            break
        close = _matching_brace(text, brace)
        prelude, body = text[pos:brace].strip(), text[brace + 1:close]
        if prelude.startswith("@"):
            rules.append(_at_rule(prelude, body))
        elif prelude:
            rules.append(CSSStyleRule(" ".join(prelude.split()), CSSStyleDeclaration(body)))
        pos = close + 1
    return rules


def parse_stylesheet(text: str) -> list[CSSRule]:
    """Parse CSS source into rules. Malformed fragments are skipped."""
    return _parse_rules(_COMMENT.sub("", text or ""))


# --- Media queries ---

_FEATURE = re.compile(r"\(\s*([a-z-]+)\s*(?::\s*([^)]+?))?\s*\)")
_LENGTH = re.compile(r"^(-?[\d.]+)\s*(px|em|rem)?$")
_SCREEN_TYPES = {"all", "screen"}


def _length(value: str) -> float | None:
    m = _LENGTH.match(value.strip().lower())
    if not m:
        return None
    number = float(m.group(1))
    return number * 16 if m.group(2) in ("em", "rem") else number


def _feature_matches(feature: str, value: str | None, width: int, height: int) -> bool:
    if feature == "orientation":
        return (value or "").strip() == ("landscape" if width >= height else "portrait")
    if feature == "prefers-color-scheme":
        return (value or "").strip() == "light"
    if feature == "prefers-reduced-motion":
        return (value or "").strip() == "no-preference"
    if value is None:
        return feature in ("color", "width", "height")
    size = _length(value)
    if size is None:
        return False
    checks = {
        "width": width == size,
        "min-width": width >= size,
        "max-width": width <= size,
        "height": height == size,
        "min-height": height >= size,
        "max-height": height <= size,
    }
    return checks.get(feature, False)


def _query_matches(query: str, width: int, height: int) -> bool:
    query = query.strip().lower()
    negate = query.startswith("not ")
    if negate:
        query = query[4:]
    if query.startswith("only "):
        query = query[5:]
    media_type = re.sub(r"\band\b", " ", query.split("(", 1)[0]).strip()
    ok = not media_type or media_type in _SCREEN_TYPES
    if ok:
        ok = all(_feature_matches(f, v, width, height) for f, v in _FEATURE.findall(query))
    return ok != negate


def media_matches(media_text: str, width: int = 1024, height: int = 768) -> bool:
    """Whether a media query list applies to a viewport of the given size."""
    queries = [q for q in (media_text or "").split(",") if q.strip()]
    if not queries:
        return True
    return any(_query_matches(q, width, height) for q in queries)


# --- Cascade ---

# Properties that decide whether an element is rendered at all.
_VISIBILITY_PROPERTIES = frozenset({"display", "visibility"})


def iter_style_rules(sheets: Iterable[CSSStyleSheet], width: int = 1024,
                     height: int = 768) -> Iterator[CSSStyleRule]:
    """Yield style rules that apply at the given viewport size, in source order."""

    def walk(rules: list[CSSRule]) -> Iterator[CSSStyleRule]:
        for rule in rules:
            if isinstance(rule, CSSStyleRule):
                yield rule
            elif isinstance(rule, CSSMediaRule):
                if media_matches(rule.media.media_text, width, height):
                    yield from walk(rule.css_rules)

    for sheet in sheets:
        if sheet.disabled or not media_matches(sheet.media.media_text, width, height):
            continue
        yield from walk(sheet.css_rules)


def _apply(target: CSSStyleDeclaration, source: CSSStyleDeclaration) -> None:
    for name, value, priority in source.items():
        if target.get_property_priority(name) and not priority:
            continue
        target.set_property(name, value, priority)


class RuleIndex:
    """The window's applicable style rules and the elements each one matches.

    Every selector is evaluated once against the whole document, so
    cascading an element afterwards is a set lookup per rule. Matched
    elements are kept alive, which keeps lxml handing out the same proxy
    objects and their ids stable.

    Args:
        window: Window holding the document and its style sheets.
        properties: If given, only rules declaring one of these
            properties are indexed.
    """

    def __init__(self, window, properties: frozenset[str] | None = None):
        tree = window.document.getroottree()
        sheets = getattr(window, "style_sheets", [])
        width = getattr(window, "inner_width", 1024)
        height = getattr(window, "inner_height", 768)
        self._entries: list[tuple[CSSStyleRule, set[int]]] = []
        self._alive: list[Element] = []
        for rule in iter_style_rules(sheets, width, height):
            if properties is not None and not any(p in rule.style for p in properties):
                continue
            compiled = compile_selector(rule.selector_text)
            if compiled is None:
                logger.debug("Skipping unsupported selector %r", rule.selector_text)
                continue
            matched = compiled(tree)
            if not matched:
                continue
            self._alive.extend(matched)
            self._entries.append((rule, {id(el) for el in matched}))

    def __len__(self) -> int:
        return len(self._entries)

    def matched(self, rule_filter=None) -> Iterator[Element]:
        """Elements matched by any indexed rule passing ``rule_filter``."""
        ids: set[int] = set()
        for rule, rule_ids in self._entries:
            if rule_filter is None or rule_filter(rule):
                ids |= rule_ids
        emitted: set[int] = set()
        for el in self._alive:
            key = id(el)
            if key in ids and key not in emitted:
                emitted.add(key)
                yield el

    def style_for(self, element: Element) -> CSSStyleDeclaration:
        """Cascade the indexed rules, then the inline style, for ``element``."""
        style = CSSStyleDeclaration()
        key = id(element)
        for rule, ids in self._entries:
            if key in ids:
                _apply(style, rule.style)
        inline = element.get("style")
        if inline:
            _apply(style, CSSStyleDeclaration(inline))
        return style


def compute_style(window, element: Element) -> CSSStyleDeclaration:
    """Cascade the window's style sheets and the inline style for ``element``.

    Rules apply in source order with ``!important`` winning; selector
    specificity is not taken into account.
    """
    return RuleIndex(window).style_for(element)


def is_hidden(style: CSSStyleDeclaration) -> bool:
    display = style.get_property_value("display").lower()
    visibility = style.get_property_value("visibility").lower()
    return display == "none" or visibility in ("hidden", "collapse")


def find_hidden_elements(window) -> list[Element]:
    """Elements hidden by the ``hidden`` attribute or their computed style.

    Candidates come from rules that hide something and from inline styles.
    Only rules touching ``display`` or ``visibility`` take part, since no
    other property can hide an element.
    """
    index = RuleIndex(window, _VISIBILITY_PROPERTIES)
    candidates: dict[int, Element] = {
        id(el): el for el in index.matched(lambda rule: is_hidden(rule.style))
    }
    for el in window.document.iter():
        if isinstance(el, Element) and (el.get("style") or el.hidden):
            candidates[id(el)] = el

    hidden = []
    for el in candidates.values():
        if el.tag in ("html", "body"):
            continue
        if el.hidden or is_hidden(index.style_for(el)):
            hidden.append(el)
    return hidden
