from __future__ import annotations

import json
import unittest

from fastapi.testclient import TestClient

from backend.app.main import app
from backend.app.upstream import get_booru_client

from fakes import FakeUpstream, make_client


class ProxyRouteTestCase(unittest.TestCase):
    server_login: str | None = None
    server_api_key: str | None = None

    def setUp(self) -> None:
        self.upstream = FakeUpstream()
        self.booru = make_client(self.upstream, login=self.server_login, api_key=self.server_api_key)
        app.dependency_overrides[get_booru_client] = lambda: self.booru
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def sent_json(self, index: int = 0) -> dict:
        return json.loads(self.upstream.requests[index].content)


class PostsRouteTests(ProxyRouteTestCase):
    def test_flash_post_is_dropped(self) -> None:
        self.upstream.on(
            "/posts.json",
            {"tags": "order:score rating:s -type:swf", "page": "1", "limit": "10"},
            json_body={"posts": [
                {"id": 1, "file": {"ext": "webm", "url": "a.webm"}},
                {"id": 2, "file": {"ext": "swf", "url": "b.swf"}},
            ]},
        )

        response = self.client.get("/api/posts", params={"tags": "order:score rating:s"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"posts": [{"id": 1, "file": {"ext": "webm", "url": "a.webm"}}]})

    def test_page_and_limit_are_forwarded(self) -> None:
        self.upstream.on("/posts.json", {"tags": "-type:swf", "page": "3", "limit": "25"},
                         json_body={"posts": []})

        response = self.client.get("/api/posts", params={"page": 3, "limit": 25})

        self.assertEqual(response.json(), {"posts": []})

    def test_upstream_failure_is_generic_500(self) -> None:
        self.upstream.on("/posts.json", {"tags": "-type:swf", "page": "1", "limit": "10"},
                         text="<html>down</html>")

        response = self.client.get("/api/posts")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "Failed to fetch posts."})


class MutationRouteTests(ProxyRouteTestCase):
    def test_vote_passes_client_credentials_through(self) -> None:
        self.upstream.on("/posts/42/votes.json", json_body={"score": 1, "our_score": 1})

        response = self.client.post("/api/posts/42/vote", json={"score": 1, "login": "x", "api_key": "y"})

        self.assertEqual(self.sent_json(), {"score": 1, "login": "x", "api_key": "y"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"score": 1, "our_score": 1})

    def test_vote_rejection_status_and_body_relayed(self) -> None:
        self.upstream.on("/posts/42/votes.json", status=422, json_body={"success": False, "reason": "bad score"})

        response = self.client.post("/api/posts/42/vote", json={"score": 99})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json(), {"success": False, "reason": "bad score"})
        self.assertEqual(self.sent_json(), {"score": 99})

    def test_vote_non_json_upstream_is_500(self) -> None:
        self.upstream.on("/posts/42/votes.json", text="<html>cloudflare</html>")

        response = self.client.post("/api/posts/42/vote", json={"score": 1})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "Vote failed."})

    def test_favorite(self) -> None:
        self.upstream.on("/favorites.json", json_body={"post_id": 42})

        response = self.client.post("/api/favorites", json={"post_id": 42})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.sent_json(), {"post_id": 42})
        self.assertEqual(self.upstream.requests[0].method, "POST")

    def test_unfavorite_without_body(self) -> None:
        self.upstream.on("/favorites/42.json", json_body={"success": True})

        response = self.client.delete("/api/favorites/42")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.upstream.requests[0].method, "DELETE")
        self.assertEqual(self.sent_json(), {})

    def test_unfavorite_with_credentials(self) -> None:
        self.upstream.on("/favorites/42.json", status=404, json_body={"success": False})

        response = self.client.request("DELETE", "/api/favorites/42", json={"login": "x", "api_key": "y"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.sent_json(), {"login": "x", "api_key": "y"})


class ServerCredentialRouteTests(ProxyRouteTestCase):
    server_login = "server"
    server_api_key = "server-key"

    def test_server_credentials_override_client(self) -> None:
        self.upstream.on("/posts/42/votes.json", json_body={"score": -1})

        self.client.post("/api/posts/42/vote", json={"score": -1, "login": "x", "api_key": "y"})

        self.assertEqual(self.sent_json(), {"score": -1, "login": "server", "api_key": "server-key"})
        self.assertTrue(self.upstream.requests[0].headers["Authorization"].startswith("Basic "))


class CommentsRouteTests(ProxyRouteTestCase):
    def test_normalized_comments(self) -> None:
        self.upstream.on("/posts/9/comments.json", status=404, text="missing")
        self.upstream.on("/comments.json", {"post_id": "9"}, status=404, text="missing")
        self.upstream.on("/comments.json", {"search[post_id]": "9"},
                         json_body={"comments": [{"id": 9, "body": "hi", "creator_id": 5}]})

        response = self.client.get("/api/comments/9")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [{
            "id": 9,
            "body": "hi",
            "creator_id": 5,
            "creator_name": "Unknown",
            "avatar_url": None,
        }])

    def test_non_string_body_and_name_are_coerced(self) -> None:
        self.upstream.on("/posts/7/comments.json", json_body=[{"id": 1, "body": 12345, "creator_name": 99}])

        response = self.client.get("/api/comments/7")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]["body"], "12345")
        self.assertEqual(response.json()[0]["creator_name"], "99")

    def test_exhausted_fallback_returns_diagnostics(self) -> None:
        self.upstream.on("/posts/9/comments.json", status=404, text="missing")
        self.upstream.on("/comments.json", {"post_id": "9"}, status=404, text="missing")
        self.upstream.on("/comments.json", {"search[post_id]": "9"}, status=500, text="upstream broke")

        response = self.client.get("/api/comments/9")

        self.assertEqual(response.status_code, 502)
        body = response.json()
        self.assertEqual(body["error"], "Failed to retrieve comments from upstream.")
        self.assertEqual(body["debug"]["status"], 500)
        self.assertEqual(body["debug"]["snippet"], "upstream broke")
        self.assertIn("text/plain", body["debug"]["content_type"])
        self.assertIn("/comments.json", body["debug"]["url"])


if __name__ == "__main__":
    unittest.main()
