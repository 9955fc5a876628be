from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .types import BooruComment, CommentFetchDiagnostics

class UpstreamError(Exception):
    """The booru could not be reached or answered with something unusable."""

class CommentsUnavailable(UpstreamError):
    """Every comment URL variant failed."""

    def __init__(self, diagnostics: Optional[CommentFetchDiagnostics]):
        super().__init__("Failed to retrieve comments from upstream.")
        self.diagnostics = diagnostics

@dataclass
class UpstreamResponse:
    """Status and parsed JSON body of a relayed mutation."""
    status_code: int
    body: Any

class BooruClient(ABC):
    """Abstract base for async booru API clients."""

    @abstractmethod
    async def search_posts(self, tags: str = "", page: int = 1, limit: int = 10) -> Any:
        """Search posts by tags and return the upstream payload."""
        ...

    @abstractmethod
    async def vote(self, post_id: int, score: Any, login: Optional[str] = None,
                   api_key: Optional[str] = None) -> UpstreamResponse:
        ...

    @abstractmethod
    async def favorite(self, post_id: Any, login: Optional[str] = None,
                       api_key: Optional[str] = None) -> UpstreamResponse:
        ...

    @abstractmethod
    async def unfavorite(self, post_id: int, login: Optional[str] = None,
                         api_key: Optional[str] = None) -> UpstreamResponse:
        ...

    @abstractmethod
    async def fetch_comments(self, post_id: int) -> List[BooruComment]:
        """Fetch normalized comments for a post."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""

def merge_credentials(defaults: Dict[str, Optional[str]], login: Optional[str],
                      api_key: Optional[str]) -> Dict[str, Optional[str]]:
    """Server-side credentials win over client-supplied ones, field by field."""
    return {
        "login": defaults.get("login") or login,
        "api_key": defaults.get("api_key") or api_key,
    }
