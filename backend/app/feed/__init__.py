from .api import CommentsResult, FeedApiClient, FeedApiError
from .controller import FeedController, OutsideTapRegistry
from .render import FeedRenderer
from .scheduler import AsyncioScheduler, Scheduler
from .surface import FeedSurface, VirtualSurface
from .types import Card, CommentPanel, FeedSettings, TapEvent

__all__ = [
    "AsyncioScheduler",
    "Card",
    "CommentPanel",
    "CommentsResult",
    "FeedApiClient",
    "FeedApiError",
    "FeedController",
    "FeedRenderer",
    "FeedSettings",
    "FeedSurface",
    "OutsideTapRegistry",
    "Scheduler",
    "TapEvent",
    "VirtualSurface",
]
