from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

class FeedApiError(Exception):
    """The proxy could not be reached or returned something unusable."""

@dataclass
class CommentsResult:
    ok: bool
    comments: List[Dict[str, Any]] = field(default_factory=list)
    debug: Optional[Dict[str, Any]] = None

class FeedApiClient:
    """
    Async client for the proxy's /api endpoints, used by the feed controller.

    An httpx.AsyncClient can be passed in (and is then owned by the caller);
    every transport, HTTP or decoding failure surfaces as FeedApiError.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            return await self.http.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as e:
            raise FeedApiError(f"{method} {path} failed: {e}") from e

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise FeedApiError(f"Invalid JSON from proxy (status {response.status_code})") from e

    async def fetch_posts(self, tags: str, page: int, limit: int) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/api/posts", params={"tags": tags, "page": page, "limit": limit})
        if response.status_code >= 400:
            raise FeedApiError(f"Post fetch failed with status {response.status_code}")

        data = self._json(response)
        posts = data.get("posts") if isinstance(data, dict) else None
        return posts if isinstance(posts, list) else []

    async def vote(self, post_id: Any, score: int) -> int:
        response = await self._request("POST", f"/api/posts/{post_id}/vote", json={"score": score})
        return response.status_code

    async def favorite(self, post_id: Any) -> int:
        response = await self._request("POST", "/api/favorites", json={"post_id": post_id})
        return response.status_code

    async def unfavorite(self, post_id: Any) -> int:
        response = await self._request("DELETE", f"/api/favorites/{post_id}", json={})
        return response.status_code

    async def fetch_comments(self, post_id: Any) -> CommentsResult:
        response = await self._request("GET", f"/api/comments/{post_id}")
        data = self._json(response)

        if response.status_code >= 400:
            debug = data.get("debug") if isinstance(data, dict) else None
            return CommentsResult(ok=False, debug=debug)

        if not isinstance(data, list):
            return CommentsResult(ok=True)
        return CommentsResult(ok=True, comments=[c for c in data if isinstance(c, dict)])
