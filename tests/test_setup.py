"""Tests for the window, its installers and the selection stand-ins."""

from __future__ import annotations

import logging

import pytest

from unclutter.dom import Range, Selection, Storage, Window, create_window, load_document
from unclutter.dom.css import CSSStyleSheet
from unclutter.dom.elements import Element, HTMLImageElement
from unclutter.dom.setup import list_installers, setup_dom_interfaces
from unclutter.dom.window import AnimationFrames, Screen


class TestInstallers:
    def test_run_in_registration_order(self):
        names = list_installers()
        assert names[0] == "basic window"
        assert names[-1] == "Window methods"
        assert "storage objects" in names

    def test_all_complete_on_real_document(self):
        window = Window(load_document("<p>x</p>"), url="https://example.com/")
        assert setup_dom_interfaces(window) == list_installers()

    def test_window_defaults(self):
        window = create_window("<p>x</p>")
        assert window.inner_width == 1024
        assert window.inner_height == 768
        assert window.device_pixel_ratio == 1
        assert window.location == "about:blank"
        assert isinstance(window.screen, Screen)
        assert window.screen.orientation.type == "landscape-primary"
        assert window.HTMLImageElement is HTMLImageElement
        assert window.CSSStyleSheet is CSSStyleSheet

    def test_existing_values_are_kept(self):
        window = Window(load_document("<p>x</p>"))
        window.inner_width = 320
        storage = Storage()
        storage.set_item("k", "v")
        window.local_storage = storage
        setup_dom_interfaces(window)
        assert window.inner_width == 320
        assert window.local_storage is storage
        assert window.session_storage is not storage

    def test_existing_animation_frame_left_alone(self):
        window = Window(load_document("<p>x</p>"))
        window.request_animation_frame = custom = lambda callback: 99
        setup_dom_interfaces(window)
        assert window.request_animation_frame is custom
        assert not hasattr(window, "animation_frames")

    def test_style_sheets_from_style_elements(self):
        window = create_window("""
            <style>p { color: red }</style>
            <style media="print" title="Print">p { color: black }</style>
            <p>x</p>
        """)
        assert len(window.style_sheets) == 2
        printed = window.style_sheets[1]
        assert printed.media.media_text == "print"
        assert printed.title == "Print"
        assert printed.owner_node.tag == "style"

    def test_failures_logged_not_raised(self, caplog):
        window = Window(None)
        with caplog.at_level(logging.WARNING, logger="unclutter.dom.setup"):
            completed = setup_dom_interfaces(window)
        assert "CSS interfaces" not in completed
        assert "DOM methods" not in completed
        assert "basic window" in completed
        assert "storage objects" in completed
        assert "Could not set up CSS interfaces" in caplog.text
        assert window.inner_width == 1024

    def test_missing_element_methods_installed(self, caplog):
        class BareDocument:
            def contains(self, other):
                return "own"

        with caplog.at_level(logging.DEBUG, logger="unclutter.dom.setup"):
            completed = setup_dom_interfaces(Window(BareDocument()))
        assert "Installed matches on BareDocument" in caplog.text
        assert "Installed contains" not in caplog.text
        assert {"DOM methods", "Node methods", "Element methods"} <= set(completed)
        for name in ("get_elements_by_class_name", "matches", "closest",
                     "get_bounding_client_rect", "get_client_rects"):
            assert getattr(BareDocument, name) is Element.__dict__[name]
        assert BareDocument().contains(None) == "own"

    def test_selection_methods(self):
        window = create_window("<p>x</p>")
        selection = window.get_selection()
        assert isinstance(selection, Selection)
        assert selection.range_count == 0
        assert selection.is_collapsed
        assert str(selection) == ""
        assert window.Range is Range


class TestStorage:
    def test_items(self):
        storage = Storage()
        storage.set_item("a", 1)
        storage.set_item("b", "two")
        assert storage.get_item("a") == "1"
        assert storage.length == 2
        assert storage.key(1) == "b"
        assert storage.key(5) is None
        storage.remove_item("a")
        assert storage.get_item("a") is None
        storage.clear()
        assert len(storage) == 0

    def test_keys_stringified(self):
        storage = Storage()
        storage.set_item(1, "x")
        assert storage.get_item(1) == "x"
        assert storage.get_item("1") == "x"
        storage.remove_item(1)
        assert storage.length == 0


class TestAnimationFrames:
    def test_request_and_run(self):
        frames = AnimationFrames()
        seen = []
        first = frames.request(seen.append)
        second = frames.request(lambda ts: seen.append(ts + 1))
        assert (first, second) == (1, 2)
        assert frames.run(10.0) == 2
        assert seen == [10.0, 11.0]
        assert len(frames) == 0

    def test_cancel(self):
        frames = AnimationFrames()
        seen = []
        handle = frames.request(seen.append)
        frames.cancel(handle)
        frames.cancel(404)
        assert frames.run() == 0
        assert seen == []

    def test_callbacks_queued_during_run_wait(self):
        frames = AnimationFrames()

        def again(ts):
            frames.request(lambda ts: None)

        frames.request(again)
        assert frames.run(0) == 1
        assert len(frames) == 1

    def test_installed_on_window(self):
        window = create_window("<p>x</p>")
        seen = []
        window.request_animation_frame(seen.append)
        assert window.run_animation_frames(5.0) == 1
        assert seen == [5.0]


class TestRange:
    def test_new_range_is_collapsed(self):
        doc = load_document("<p>x</p>")
        r = Range(doc)
        assert r.collapsed
        assert r.common_ancestor_container is doc
        assert r.to_string() == ""

    def test_select_node(self):
        doc = load_document("<div id='d'><p id='a'>a</p><p id='b'>b</p></div>")
        r = Range(doc)
        b = doc.get_element_by_id("b")
        r.select_node(b)
        assert r.start_container is doc.get_element_by_id("d")
        assert (r.start_offset, r.end_offset) == (1, 2)
        assert not r.collapsed

    def test_common_ancestor(self):
        doc = load_document("<div id='d'><p id='a'><b id='x'>a</b></p><p id='b'>b</p></div>")
        r = Range(doc)
        r.set_start(doc.get_element_by_id("x"), 0)
        r.set_end(doc.get_element_by_id("b"), 1)
        assert r.common_ancestor_container is doc.get_element_by_id("d")

    def test_collapse_and_clone(self):
        doc = load_document("<p id='p'>one <b>two</b></p>")
        r = Range(doc)
        r.select_node_contents(doc.get_element_by_id("p"))
        clone = r.clone_range()
        r.collapse(to_start=True)
        assert r.collapsed
        assert not clone.collapsed

    @pytest.mark.parametrize("method", ["clone_contents", "extract_contents"])
    def test_contents_are_empty(self, method):
        assert getattr(Range(), method)() == []
