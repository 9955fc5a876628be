import asyncio
import base64
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .base import (
    BooruClient,
    CommentsUnavailable,
    UpstreamError,
    UpstreamResponse,
    merge_credentials,
)
from .types import (
    EXCLUDED_FILE_EXT,
    BooruComment,
    CommentFetchDiagnostics,
    is_excluded_post,
)

logger = logging.getLogger(__name__)

def extract_avatar_url(payload: Any) -> Optional[str]:
    """
    Pull an avatar URL out of a user payload.

    The user object may be wrapped in a "user" key. The avatar is looked up
    as avatar_url, avatar.url, then a plain string avatar.
    """
    if not isinstance(payload, dict):
        return None
    user = payload.get("user") if isinstance(payload.get("user"), dict) else payload

    avatar_url = user.get("avatar_url")
    if isinstance(avatar_url, str) and avatar_url:
        return avatar_url

    avatar = user.get("avatar")
    if isinstance(avatar, dict):
        nested = avatar.get("url")
        if isinstance(nested, str) and nested:
            return nested
    elif isinstance(avatar, str) and avatar:
        return avatar

    return None

class E621Client(BooruClient):
    """
    Async client for the e621 API.
    """

    COMMENT_LIMIT = 50
    AVATAR_LOOKUP_LIMIT = 10
    SNIPPET_LENGTH = 250

    def __init__(
        self,
        base_url: str = "https://e621.net",
        login: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        avatar_timeout: float = 6.0,
        app_name: str = "Swipebooru",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.login = login
        self.api_key = api_key
        self.timeout = timeout
        self.avatar_timeout = avatar_timeout
        self.app_name = app_name
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "E621Client":
        return cls(
            base_url=settings.E621_BASE_URL,
            login=settings.E621_LOGIN,
            api_key=settings.E621_API_KEY,
            timeout=settings.UPSTREAM_TIMEOUT,
            avatar_timeout=settings.AVATAR_TIMEOUT,
            app_name=settings.APP_NAME,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    def build_headers(self) -> Dict[str, str]:
        """e621 rejects requests without an identifying User-Agent."""
        headers = {
            "User-Agent": f"{self.app_name}/1.0 (by {self.login or 'unknown'} on e621)",
            "Accept": "application/json",
        }
        if self.login and self.api_key:
            token = base64.b64encode(f"{self.login}:{self.api_key}".encode()).decode()
            headers["Authorization"] = f"Basic {token}"
        return headers

    # Posts

    async def search_posts(self, tags: str = "", page: int = 1, limit: int = 10) -> Any:
        final_tags = " ".join(part for part in (tags.strip(), f"-type:{EXCLUDED_FILE_EXT}") if part)
        params = {"tags": final_tags, "page": page, "limit": limit}

        try:
            response = await self.http.get(
                f"{self.base_url}/posts.json",
                params=params,
                headers=self.build_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Post search failed (tags={final_tags!r}, page={page}): {e}")
            raise UpstreamError(str(e)) from e

        if isinstance(data, dict) and isinstance(data.get("posts"), list):
            data["posts"] = [p for p in data["posts"] if not is_excluded_post(p)]

        return data

    # Mutations

    async def _relay(self, method: str, path: str, payload: Dict[str, Any]) -> UpstreamResponse:
        """Forward a mutation and hand back the upstream status and body untouched."""
        url = f"{self.base_url}{path}"
        try:
            response = await self.http.request(
                method,
                url,
                json={k: v for k, v in payload.items() if v is not None},
                headers=self.build_headers(),
                timeout=self.timeout,
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise UpstreamError(str(e)) from e

        return UpstreamResponse(status_code=response.status_code, body=body)

    def _credentials(self, login: Optional[str], api_key: Optional[str]) -> Dict[str, Optional[str]]:
        return merge_credentials({"login": self.login, "api_key": self.api_key}, login, api_key)

    async def vote(self, post_id: int, score: Any, login: Optional[str] = None,
                   api_key: Optional[str] = None) -> UpstreamResponse:
        payload = {"score": score, **self._credentials(login, api_key)}
        return await self._relay("POST", f"/posts/{post_id}/votes.json", payload)

    async def favorite(self, post_id: Any, login: Optional[str] = None,
                       api_key: Optional[str] = None) -> UpstreamResponse:
        payload = {"post_id": post_id, **self._credentials(login, api_key)}
        return await self._relay("POST", "/favorites.json", payload)

    async def unfavorite(self, post_id: int, login: Optional[str] = None,
                         api_key: Optional[str] = None) -> UpstreamResponse:
        return await self._relay("DELETE", f"/favorites/{post_id}.json", self._credentials(login, api_key))

    # Comments

    def comment_urls(self, post_id: int) -> List[httpx.URL]:
        """
        URL variants for fetching a post's comments, in the order tried.

        e621 has changed which of these it answers over time, so all three
        are kept.
        """
        return [
            httpx.URL(f"{self.base_url}/posts/{post_id}/comments.json"),
            httpx.URL(f"{self.base_url}/comments.json", params={"post_id": post_id}),
            httpx.URL(f"{self.base_url}/comments.json", params={"search[post_id]": post_id}),
        ]

    def _parse_comment_response(
        self, url: httpx.URL, response: httpx.Response
    ) -> Tuple[Optional[list], Optional[CommentFetchDiagnostics]]:
        text = response.text
        diagnostics = CommentFetchDiagnostics(
            url=str(url),
            status=response.status_code,
            content_type=response.headers.get("content-type", "").lower(),
            snippet=text[:self.SNIPPET_LENGTH],
        )

        if not response.is_success:
            return None, diagnostics

        try:
            payload = json.loads(text)
        except ValueError:
            return None, diagnostics

        if isinstance(payload, list):
            return payload, None
        if isinstance(payload, dict) and isinstance(payload.get("comments"), list):
            return payload["comments"], None

        return None, diagnostics

    async def fetch_comments(self, post_id: int) -> List[BooruComment]:
        headers = self.build_headers()
        last_diagnostics = None

        for url in self.comment_urls(post_id):
            try:
                response = await self.http.get(url, headers=headers, timeout=self.timeout)
            except httpx.HTTPError as e:
                last_diagnostics = CommentFetchDiagnostics(url=str(url), error=str(e))
                continue

            raw_comments, diagnostics = self._parse_comment_response(url, response)
            if raw_comments is None:
                logger.debug(f"Comment URL rejected: {url} (status {response.status_code})")
                last_diagnostics = diagnostics
                continue

            comments = [
                BooruComment.from_api(c)
                for c in raw_comments[:self.COMMENT_LIMIT]
                if isinstance(c, dict)
            ]
            return await self.enrich_avatars(comments)

        logger.warning(f"All comment URLs failed for post {post_id}")
        raise CommentsUnavailable(last_diagnostics)

    async def lookup_avatar(self, creator_id: Any) -> Optional[str]:
        """Best-effort avatar lookup; any failure yields None."""
        try:
            response = await self.http.get(
                f"{self.base_url}/users/{creator_id}.json",
                headers=self.build_headers(),
                timeout=self.avatar_timeout,
            )
            if not response.is_success:
                return None
            payload = response.json()
        except Exception as e:
            logger.debug(f"Avatar lookup failed for user {creator_id}: {e}")
            return None

        return extract_avatar_url(payload)

    async def enrich_avatars(self, comments: List[BooruComment]) -> List[BooruComment]:
        """
        Fill in avatar_url for up to AVATAR_LOOKUP_LIMIT distinct creators.

        Lookups run concurrently and are all awaited; a failed lookup only
        leaves its own creator without an avatar.
        """
        creator_ids = list(dict.fromkeys(
            c.creator_id for c in comments
            if isinstance(c.creator_id, (int, str))
        ))[:self.AVATAR_LOOKUP_LIMIT]

        if not creator_ids:
            return comments

        results = await asyncio.gather(
            *(self.lookup_avatar(creator_id) for creator_id in creator_ids),
            return_exceptions=True,
        )

        avatars = {}
        for creator_id, result in zip(creator_ids, results):
            if isinstance(result, BaseException):
                logger.debug(f"Avatar lookup for user {creator_id} raised: {result}")
                continue
            if result:
                avatars[creator_id] = result

        for comment in comments:
            if isinstance(comment.creator_id, (int, str)) and comment.creator_id in avatars:
                comment.avatar_url = avatars[comment.creator_id]

        return comments
