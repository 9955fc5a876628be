from dataclasses import dataclass
from typing import Any

from ..services.booru.types import BooruPost

@dataclass
class FeedSettings:
    """Tunables for the feed; the two delays are heuristics, not measured values."""
    posts_per_page: int = 10
    default_tags: str = "order:score rating:s"
    keep_behind: int = 10
    preload_ahead: int = 5
    wheel_threshold: float = 12
    swipe_threshold: float = 6
    force_scroll_release: float = 0.26  # seconds
    settle_delay: float = 0.36  # seconds
    description_limit: int = 300

@dataclass
class Card:
    """One post in the feed. The key is assigned in fetch order."""
    key: int
    post: BooruPost

@dataclass
class TapEvent:
    """A tap anywhere on the page; card_key is None outside every card."""
    card_key: Any = None
    in_panel: bool = False

@dataclass
class CommentPanel:
    card_key: int
    post_id: Any
    is_open: bool = False
    state: str = "loading"  # loading, error, empty, list
    html: str = ""
