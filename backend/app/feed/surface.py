from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .types import TapEvent

TapListener = Callable[[TapEvent], None]

class FeedSurface(ABC):
    """
    The single scroll container the feed renders into.

    Cards are stacked vertically in the order they were appended. Appending
    must never move scroll_top; removing does not adjust it either, which
    is left to the caller.
    """

    @property
    @abstractmethod
    def viewport_height(self) -> float:
        ...

    @property
    @abstractmethod
    def scroll_top(self) -> float:
        ...

    @scroll_top.setter
    @abstractmethod
    def scroll_top(self, value: float) -> None:
        ...

    @abstractmethod
    def scroll_to(self, top: float) -> None:
        """Animate the scroll position to top."""
        ...

    @abstractmethod
    def card_keys(self) -> List[int]:
        """Keys of the mounted cards, top to bottom."""
        ...

    @abstractmethod
    def card_top(self, key: int) -> float:
        ...

    @abstractmethod
    def card_height(self, key: int) -> float:
        ...

    @abstractmethod
    def append_card(self, key: int, html: str) -> None:
        ...

    @abstractmethod
    def remove_card(self, key: int) -> None:
        ...

    @abstractmethod
    def show_panel(self, key: int, html: str) -> None:
        """Render a card's comment panel and mark it open."""
        ...

    @abstractmethod
    def hide_panel(self, key: int) -> None:
        ...

    @abstractmethod
    def add_outside_tap_listener(self, listener: TapListener) -> Any:
        """Register a page-level tap listener and return its handle."""
        ...

    @abstractmethod
    def remove_outside_tap_listener(self, handle: Any) -> None:
        ...

@dataclass
class _CardBox:
    key: int
    html: str
    height: float
    panel_html: Optional[str] = None

class VirtualSurface(FeedSurface):
    """
    In-memory layout of a feed: no rendering, just geometry.

    Cards default to one viewport tall, like the full-height cards of the
    web front-end; card_height_for can override that per key.
    """

    def __init__(self, viewport_height: float = 800,
                 card_height_for: Optional[Callable[[int], float]] = None):
        self._viewport_height = viewport_height
        self._card_height_for = card_height_for or (lambda key: viewport_height)
        self._scroll_top = 0.0
        self._cards: List[_CardBox] = []
        self._listeners: Dict[int, TapListener] = {}
        self._next_handle = 1
        self.scroll_requests: List[float] = []

    @property
    def viewport_height(self) -> float:
        return self._viewport_height

    @property
    def content_height(self) -> float:
        return sum(box.height for box in self._cards)

    @property
    def scroll_top(self) -> float:
        return self._scroll_top

    @scroll_top.setter
    def scroll_top(self, value: float) -> None:
        max_top = max(0.0, self.content_height - self._viewport_height)
        self._scroll_top = min(max(0.0, float(value)), max_top)

    def scroll_to(self, top: float) -> None:
        self.scroll_requests.append(top)
        self.scroll_top = top

    def _box(self, key: int) -> _CardBox:
        for box in self._cards:
            if box.key == key:
                return box
        raise KeyError(key)

    def card_keys(self) -> List[int]:
        return [box.key for box in self._cards]

    def card_top(self, key: int) -> float:
        top = 0.0
        for box in self._cards:
            if box.key == key:
                return top
            top += box.height
        raise KeyError(key)

    def card_height(self, key: int) -> float:
        return self._box(key).height

    def card_html(self, key: int) -> str:
        return self._box(key).html

    def append_card(self, key: int, html: str) -> None:
        self._cards.append(_CardBox(key=key, html=html, height=float(self._card_height_for(key))))

    def remove_card(self, key: int) -> None:
        self._cards.remove(self._box(key))

    def show_panel(self, key: int, html: str) -> None:
        self._box(key).panel_html = html

    def hide_panel(self, key: int) -> None:
        self._box(key).panel_html = None

    def panel_html(self, key: int) -> Optional[str]:
        return self._box(key).panel_html

    def add_outside_tap_listener(self, listener: TapListener) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._listeners[handle] = listener
        return handle

    def remove_outside_tap_listener(self, handle: int) -> None:
        self._listeners.pop(handle, None)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def tap(self, card_key: Any = None, in_panel: bool = False) -> None:
        """Dispatch a tap to every registered listener."""
        event = TapEvent(card_key=card_key, in_panel=in_panel)
        for listener in list(self._listeners.values()):
            listener(event)
