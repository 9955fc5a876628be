from __future__ import annotations

import unittest

import httpx

from backend.app.feed import FeedApiClient, FeedApiError
from backend.app.main import app
from backend.app.upstream import get_booru_client

from fakes import FakeUpstream, make_client


class FeedApiAgainstProxyTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.upstream = FakeUpstream()
        self.booru = make_client(self.upstream)
        app.dependency_overrides[get_booru_client] = lambda: self.booru
        self.http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        self.api = FeedApiClient(base_url="http://testserver", http_client=self.http)

    async def asyncTearDown(self) -> None:
        app.dependency_overrides.clear()
        await self.api.aclose()
        await self.http.aclose()
        await self.booru.aclose()

    async def test_fetch_posts_returns_filtered_list(self) -> None:
        self.upstream.on(
            "/posts.json",
            {"tags": "order:score rating:s -type:swf", "page": "1", "limit": "10"},
            json_body={"posts": [
                {"id": 1, "file": {"ext": "webm", "url": "a.webm"}},
                {"id": 2, "file": {"ext": "swf", "url": "b.swf"}},
            ]},
        )

        posts = await self.api.fetch_posts("order:score rating:s", 1, 10)

        self.assertEqual([p["id"] for p in posts], [1])

    async def test_fetch_posts_failure_raises(self) -> None:
        self.upstream.on("/posts.json", {"tags": "-type:swf", "page": "1", "limit": "10"}, status=500, json_body={})

        with self.assertRaises(FeedApiError):
            await self.api.fetch_posts("", 1, 10)

    async def test_comment_failure_carries_debug(self) -> None:
        result = await self.api.fetch_comments(77)

        self.assertFalse(result.ok)
        self.assertEqual(result.debug["status"], 404)
        self.assertEqual(result.comments, [])

    async def test_comments_success(self) -> None:
        self.upstream.on("/posts/77/comments.json", json_body=[{"id": 1, "body": "nice", "creator_name": "amy"}])

        result = await self.api.fetch_comments(77)

        self.assertTrue(result.ok)
        self.assertEqual(result.comments[0]["creator_name"], "amy")

    async def test_vote_and_favorites_return_status(self) -> None:
        self.upstream.on("/posts/5/votes.json", status=403, json_body={"success": False})
        self.upstream.on("/favorites.json", json_body={"post_id": 5})
        self.upstream.on("/favorites/5.json", json_body={})

        self.assertEqual(await self.api.vote(5, 1), 403)
        self.assertEqual(await self.api.favorite(5), 200)
        self.assertEqual(await self.api.unfavorite(5), 200)


def refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


class FeedApiTransportTests(unittest.IsolatedAsyncioTestCase):
    async def test_transport_errors_become_feed_api_errors(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(refuse_connection))
        api = FeedApiClient(base_url="http://localhost:1", http_client=http)

        with self.assertRaises(FeedApiError):
            await api.fetch_posts("", 1, 10)
        with self.assertRaises(FeedApiError):
            await api.vote(1, 1)

        await http.aclose()

    async def test_non_json_body_becomes_feed_api_error(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))
        api = FeedApiClient(base_url="http://localhost:1", http_client=http)

        with self.assertRaises(FeedApiError):
            await api.fetch_comments(1)

        await http.aclose()


if __name__ == "__main__":
    unittest.main()
