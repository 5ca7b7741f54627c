"""The virtual window that hosts a parsed document."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from typing import Callable

from unclutter.dom.elements import Element


class Storage:
    """In-memory stand-in for ``localStorage`` / ``sessionStorage``."""

    def __init__(self):
        self._items: dict[str, str] = {}

    @property
    def length(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get_item(self, key: str) -> str | None:
        return self._items.get(str(key))

    def set_item(self, key: str, value) -> None:
        self._items[str(key)] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(str(key), None)

    def clear(self) -> None:
        self._items.clear()

    def key(self, index: int) -> str | None:
        keys = list(self._items)
        return keys[index] if 0 <= index < len(keys) else None


@dataclass
class ScreenOrientation:
    type: str = "landscape-primary"
    angle: int = 0


@dataclass
class Screen:
    width: int = 1024
    height: int = 768
    avail_width: int = 1024
    avail_height: int = 768
    color_depth: int = 24
    pixel_depth: int = 24
    orientation: ScreenOrientation = field(default_factory=ScreenOrientation)


class AnimationFrames:
    """Queue of animation-frame callbacks.

    Nothing is painted, so callbacks only run when the queue is flushed.
    """

    def __init__(self):
        self._handles = itertools.count(1)
        self._pending: dict[int, Callable[[float], object]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def request(self, callback: Callable[[float], object]) -> int:
        handle = next(self._handles)
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def run(self, timestamp: float | None = None) -> int:
        """Run every queued callback once. Returns how many ran.

        Callbacks queued while flushing wait for the next flush.
        """
        if timestamp is None:
            timestamp = time.monotonic() * 1000
        batch, self._pending = self._pending, {}
        for callback in batch.values():
            callback(timestamp)
        return len(batch)


class Window:
    """A window holding a document and its location.

    Browser capabilities (viewport, storage, computed style and so on) are
    not defined here; :func:`unclutter.dom.setup.setup_dom_interfaces`
    installs whichever ones are missing.
    """

    def __init__(self, document: Element, url: str | None = None):
        self.document = document
        self.url = url

    @property
    def location(self) -> str:
        return self.url or "about:blank"

    def __repr__(self) -> str:
        return f"<Window {self.location}>"
