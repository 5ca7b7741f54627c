"""Selection and Range stand-ins.

Nothing is ever selected in a headless document, so a selection is always
empty and ranges stay collapsed at the start of the document.
"""

from __future__ import annotations

from lxml import etree

from unclutter.dom.elements import DOMRect


class Range:
    START_TO_START = 0
    START_TO_END = 1
    END_TO_END = 2
    END_TO_START = 3

    def __init__(self, document: etree._Element | None = None):
        self.start_container = document
        self.start_offset = 0
        self.end_container = document
        self.end_offset = 0

    @property
    def collapsed(self) -> bool:
        return (self.start_container is self.end_container
                and self.start_offset == self.end_offset)

    @property
    def common_ancestor_container(self) -> etree._Element | None:
        if self.start_container is None or self.end_container is None:
            return self.start_container
        start_chain = [self.start_container, *self.start_container.iterancestors()]
        end_chain = [self.end_container, *self.end_container.iterancestors()]
        for node in start_chain:
            if any(node is other for other in end_chain):
                return node
        return None

    def set_start(self, node: etree._Element, offset: int) -> None:
        self.start_container, self.start_offset = node, offset

    def set_end(self, node: etree._Element, offset: int) -> None:
        self.end_container, self.end_offset = node, offset

    def select_node(self, node: etree._Element) -> None:
        parent = node.getparent()
        if parent is None:
            self.select_node_contents(node)
            return
        index = parent.index(node)
        self.set_start(parent, index)
        self.set_end(parent, index + 1)

    def select_node_contents(self, node: etree._Element) -> None:
        self.set_start(node, 0)
        self.set_end(node, len(node))

    def collapse(self, to_start: bool = False) -> None:
        if to_start:
            self.set_end(self.start_container, self.start_offset)
        else:
            self.set_start(self.end_container, self.end_offset)

    def clone_range(self) -> Range:
        clone = Range(self.start_container)
        clone.set_start(self.start_container, self.start_offset)
        clone.set_end(self.end_container, self.end_offset)
        return clone

    def compare_boundary_points(self, how: int, source: Range) -> int:
        return 0

    def compare_point(self, node: etree._Element, offset: int) -> int:
        return 0

    def clone_contents(self) -> list:
        return []

    def extract_contents(self) -> list:
        return []

    def delete_contents(self) -> None:
        pass

    def get_bounding_client_rect(self) -> DOMRect:
        return DOMRect()

    def to_string(self) -> str:
        return ""

    def __str__(self) -> str:
        return self.to_string()

    def detach(self) -> None:
        pass


class Selection:
    """The document selection. Always empty."""

    anchor_node = None
    anchor_offset = 0
    focus_node = None
    focus_offset = 0
    direction = "forward"
    is_collapsed = True
    range_count = 0
    type = "None"

    def __init__(self, document: etree._Element | None = None):
        self._document = document

    def get_range_at(self, index: int) -> Range:
        return Range(self._document)

    def add_range(self, range: Range) -> None:
        pass

    def remove_range(self, range: Range) -> None:
        pass

    def remove_all_ranges(self) -> None:
        pass

    def empty(self) -> None:
        pass

    def collapse(self, node=None, offset: int = 0) -> None:
        pass

    def collapse_to_start(self) -> None:
        pass

    def collapse_to_end(self) -> None:
        pass

    def extend(self, node, offset: int = 0) -> None:
        pass

    def select_all_children(self, node) -> None:
        pass

    def set_base_and_extent(self, anchor, anchor_offset, focus, focus_offset) -> None:
        pass

    def delete_from_document(self) -> None:
        pass

    def contains_node(self, node, allow_partial_containment: bool = False) -> bool:
        return False

    def __str__(self) -> str:
        return ""
