import asyncio
import logging
import math
import re
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set

from ..services.booru.types import BooruPost, is_excluded_post
from .api import FeedApiClient, FeedApiError
from .render import FeedRenderer
from .scheduler import Scheduler
from .surface import FeedSurface
from .types import Card, CommentPanel, FeedSettings, TapEvent

logger = logging.getLogger(__name__)

MOBILE_UA_PATTERN = re.compile(r"Mobi|Android|iPhone|iPad", re.IGNORECASE)

class OutsideTapRegistry:
    """
    Which card owns which outside-tap listener.

    A card has at most one; removing a card is a lookup and unregister.
    """

    def __init__(self, surface: FeedSurface):
        self.surface = surface
        self._handles: Dict[int, Any] = {}

    def register(self, card_key: int, listener: Callable[[TapEvent], None]) -> None:
        self.release(card_key)
        self._handles[card_key] = self.surface.add_outside_tap_listener(listener)

    def release(self, card_key: int) -> bool:
        handle = self._handles.pop(card_key, None)
        if handle is None:
            return False
        self.surface.remove_outside_tap_listener(handle)
        return True

    def __contains__(self, card_key: int) -> bool:
        return card_key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

class FeedController:
    """
    Drives a vertically paginated feed where one gesture moves one post.

    Created once per page session. Mounted cards always form a contiguous
    run of the fetched posts: cards pruned from above are dropped, cards
    pruned from below are parked in order and remounted before any new page
    is requested.

    Input handlers are synchronous. Network work (page fetches, comment
    loads, votes) runs as tasks on the running event loop, so input keeps
    being handled while a request is in flight.
    """

    def __init__(
        self,
        api: FeedApiClient,
        surface: FeedSurface,
        scheduler: Scheduler,
        settings: Optional[FeedSettings] = None,
        renderer: Optional[FeedRenderer] = None,
    ):
        self.api = api
        self.surface = surface
        self.scheduler = scheduler
        self.settings = settings or FeedSettings()
        self.renderer = renderer or FeedRenderer(self.settings.description_limit)

        # Next page to request; advances only after a non-empty page
        self.current_page = 1
        # Set while a page fetch is in flight; further fetch calls are no-ops
        self.loading = False
        # Touch device: swipes snap and taps outside a panel close it
        self.is_mobile = False
        # Set during a programmatic snap; scroll maintenance and wheel/swipe are ignored
        self.is_force_scrolling = False

        self.cards: Dict[int, Card] = {}
        self.panels: Dict[int, CommentPanel] = {}
        self.outside_taps = OutsideTapRegistry(surface)

        self._pending: Deque[Card] = deque()
        self._next_card_key = 0
        self._snap_generation = 0
        self._touch_start_y: Optional[float] = None
        self._tasks: Set[asyncio.Task] = set()
        self._page_task: Optional[asyncio.Task] = None

    async def start(self, user_agent: str = "") -> None:
        self.is_mobile = bool(MOBILE_UA_PATTERN.search(user_agent or ""))
        await self.fetch_posts()

    # Background work

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every spawned fetch, comment load and action has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    # Pagination

    def request_next_page(self) -> None:
        """Start a page fetch in the background unless one is already running."""
        if self.loading or (self._page_task is not None and not self._page_task.done()):
            return
        self._page_task = self._spawn(self.fetch_posts())

    async def fetch_posts(self) -> bool:
        """Fetch and append the next page. Returns True if a page was added."""
        if self.loading:
            return False
        self.loading = True

        try:
            posts = await self.api.fetch_posts(
                self.settings.default_tags,
                self.current_page,
                self.settings.posts_per_page,
            )
            if not posts:
                return False

            for data in posts:
                if not isinstance(data, dict) or is_excluded_post(data):
                    continue
                self.add_post(BooruPost.from_api(data))

            self.current_page += 1
            return True
        except FeedApiError as e:
            logger.warning(f"Page {self.current_page} fetch failed: {e}")
            return False
        finally:
            self.loading = False

    def add_post(self, post: BooruPost) -> Card:
        card = Card(key=self._next_card_key, post=post)
        self._next_card_key += 1
        self.cards[card.key] = card

        # Parked cards come first in fetch order
        if self._pending:
            self._pending.append(card)
        else:
            self._mount(card)
        return card

    def _mount(self, card: Card) -> None:
        self.surface.append_card(card.key, self.renderer.render_card(card.post))

    def _unmount(self, key: int) -> None:
        self.outside_taps.release(key)
        self.panels.pop(key, None)
        self.surface.remove_card(key)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # Position and snapping

    def current_index(self) -> int:
        """Index of the mounted card whose centre is nearest the viewport centre."""
        keys = self.surface.card_keys()
        if not keys:
            return 0

        mid = self.surface.scroll_top + self.surface.viewport_height / 2
        best = 0
        best_dist = math.inf
        for i, key in enumerate(keys):
            center = self.surface.card_top(key) + self.surface.card_height(key) / 2
            dist = abs(center - mid)
            if dist < best_dist:
                best_dist = dist
                best = i
        return best

    def current_card(self) -> Optional[Card]:
        keys = self.surface.card_keys()
        if not keys:
            return None
        return self.cards[keys[self.current_index()]]

    def scroll_to_card_index(self, index: int) -> None:
        keys = self.surface.card_keys()
        if not keys:
            return

        idx = max(0, min(index, len(keys) - 1))
        self._snap_generation += 1
        generation = self._snap_generation

        self.is_force_scrolling = True
        self.surface.scroll_to(self.surface.card_top(keys[idx]))

        self.scheduler.call_later(self.settings.force_scroll_release, self._release_force_scroll, generation)
        self.scheduler.call_later(self.settings.settle_delay, self._settle, generation)

    def _release_force_scroll(self, generation: int) -> None:
        # A newer snap owns the flag now
        if generation == self._snap_generation:
            self.is_force_scrolling = False

    def _settle(self, generation: int) -> None:
        if generation == self._snap_generation:
            self.maintain_window()

    # Input

    def on_wheel(self, delta_x: float, delta_y: float) -> bool:
        """Handle a wheel event. Returns True when it was consumed as a snap."""
        if self.is_mobile or self.is_force_scrolling:
            return False
        if abs(delta_y) < abs(delta_x):
            return False
        if abs(delta_y) < self.settings.wheel_threshold:
            return False

        idx = self.current_index()
        self.scroll_to_card_index(idx + 1 if delta_y > 0 else idx - 1)
        return True

    def on_key(self, key: str) -> bool:
        if key == "ArrowDown":
            self.scroll_to_card_index(self.current_index() + 1)
            return True
        if key == "ArrowUp":
            self.scroll_to_card_index(self.current_index() - 1)
            return True
        return False

    def on_touch_start(self, y: float) -> None:
        if not self.is_mobile:
            return
        self._touch_start_y = y

    def on_touch_end(self, y: Optional[float] = None) -> None:
        if not self.is_mobile or self._touch_start_y is None:
            return

        start_y = self._touch_start_y
        self._touch_start_y = None
        if self.is_force_scrolling:
            return

        dy = (y if y is not None else start_y) - start_y
        idx = self.current_index()

        if abs(dy) < self.settings.swipe_threshold:
            self.scroll_to_card_index(idx)
        elif dy < 0:
            self.scroll_to_card_index(idx + 1)
        else:
            self.scroll_to_card_index(idx - 1)

    def on_scroll(self) -> None:
        """Passive scroll: keep the window in shape, never snap."""
        if self.is_force_scrolling:
            return
        self.maintain_window()

    # Window maintenance

    def maintain_window(self) -> None:
        self.ensure_preload()
        self.prune_around_current()

    def ensure_preload(self) -> None:
        keys = self.surface.card_keys()
        ahead = len(keys) - self.current_index() - 1

        while ahead < self.settings.preload_ahead and self._pending:
            self._mount(self._pending.popleft())
            ahead += 1

        if ahead < self.settings.preload_ahead:
            self.request_next_page()

    def prune_around_current(self) -> None:
        """
        Unmount cards outside [current - keep_behind, current + preload_ahead].

        Cards below go first; they sit under the viewport so scroll_top is
        unaffected. Cards above are then removed and scroll_top is reduced
        by exactly their combined height, keeping the view still.
        """
        keys = self.surface.card_keys()
        if not keys:
            return

        idx = self.current_index()
        window_start = max(0, idx - self.settings.keep_behind)
        window_end = min(len(keys) - 1, idx + self.settings.preload_ahead)

        for key in reversed(keys[window_end + 1:]):
            self._unmount(key)
            self._pending.appendleft(self.cards[key])

        removed_above_height = 0.0
        for key in keys[:window_start]:
            removed_above_height += self.surface.card_height(key)
            self._unmount(key)
            del self.cards[key]

        if removed_above_height > 0:
            self.surface.scroll_top = max(0.0, self.surface.scroll_top - removed_above_height)

    # Actions

    # Fire-and-forget: failures are logged, never surfaced

    def vote(self, post_id: Any, score: int) -> None:
        self._spawn(self._send_action(self.api.vote(post_id, score), f"Vote on post {post_id}"))

    def favorite(self, post_id: Any) -> None:
        self._spawn(self._send_action(self.api.favorite(post_id), f"Favorite of post {post_id}"))

    def unfavorite(self, post_id: Any) -> None:
        self._spawn(self._send_action(self.api.unfavorite(post_id), f"Unfavorite of post {post_id}"))

    async def _send_action(self, request: Awaitable[int], label: str) -> None:
        try:
            await request
        except FeedApiError as e:
            logger.debug(f"{label} failed: {e}")

    # Comments

    def toggle_comments(self, card_key: int) -> None:
        if card_key not in self.surface.card_keys():
            return

        panel = self.panels.get(card_key)
        if panel is not None and panel.is_open:
            self.close_comments(card_key)
            return

        if panel is None:
            panel = CommentPanel(card_key=card_key, post_id=self.cards[card_key].post.id)
            self.panels[card_key] = panel
        panel.is_open = True

        if self.is_mobile:
            self.outside_taps.register(card_key, lambda event: self._on_outside_tap(card_key, event))

        self._show_panel(panel, "loading", self.renderer.render_comments_loading())
        self._spawn(self._load_comments(panel))

    async def _load_comments(self, panel: CommentPanel) -> None:
        # The panel may be closed, reopened or pruned while the request runs
        try:
            result = await self.api.fetch_comments(panel.post_id)
        except FeedApiError as e:
            if self._panel_still_open(panel):
                self._show_panel(panel, "error", self.renderer.render_comments_error(error=str(e)))
            return

        if not self._panel_still_open(panel):
            return

        if not result.ok:
            self._show_panel(panel, "error", self.renderer.render_comments_error(debug=result.debug))
        elif not result.comments:
            self._show_panel(panel, "empty", self.renderer.render_comments_empty())
        else:
            self._show_panel(panel, "list", self.renderer.render_comments_list(result.comments))

    def close_comments(self, card_key: int) -> None:
        panel = self.panels.get(card_key)
        if panel is None or not panel.is_open:
            return
        panel.is_open = False
        self.outside_taps.release(card_key)
        self.surface.hide_panel(card_key)

    def _panel_still_open(self, panel: CommentPanel) -> bool:
        return self.panels.get(panel.card_key) is panel and panel.is_open

    def _show_panel(self, panel: CommentPanel, state: str, html: str) -> None:
        panel.state = state
        panel.html = html
        self.surface.show_panel(panel.card_key, html)

    def _on_outside_tap(self, card_key: int, event: TapEvent) -> None:
        if event.card_key == card_key and event.in_panel:
            return
        self.close_comments(card_key)

    def comment_panel(self, card_key: int) -> Optional[CommentPanel]:
        return self.panels.get(card_key)

    def mounted_cards(self) -> List[Card]:
        return [self.cards[key] for key in self.surface.card_keys()]
