import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..services.booru.types import BooruPost

templates_path = Path(__file__).parent / "templates"

class FeedRenderer:
    """Renders cards and comment panels to HTML. All text is escaped."""

    def __init__(self, description_limit: int = 300):
        self.description_limit = description_limit
        self.env = Environment(
            loader=FileSystemLoader(str(templates_path)),
            autoescape=select_autoescape(["html"]),
        )

    def render_card(self, post: BooruPost) -> str:
        return self.env.get_template("card.html").render(
            post=post,
            description=post.description[:self.description_limit],
        )

    def _render_comments(self, state: str, **context: Any) -> str:
        return self.env.get_template("comments.html").render(state=state, **context)

    def render_comments_loading(self) -> str:
        return self._render_comments("loading")

    def render_comments_error(self, debug: Optional[Dict[str, Any]] = None,
                              error: Optional[str] = None) -> str:
        message = "Failed to load comments."
        if debug:
            message += f"\n\nDebug:\n{json.dumps(debug, indent=2)}"
        elif error:
            message += f"\n{error}"
        return self._render_comments("error", message=message)

    def render_comments_empty(self) -> str:
        return self._render_comments("empty")

    def render_comments_list(self, comments: List[Dict[str, Any]]) -> str:
        return self._render_comments("list", comments=comments)
