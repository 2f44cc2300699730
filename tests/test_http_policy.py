import os
import unittest
from types import SimpleNamespace
from unittest.mock import patch

os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("ACCESS_MODE", "public")

from fastapi.testclient import TestClient

from scistu.core.cors import cors_options
from scistu.core.rate_limit import limiter, rate_limit
from scistu.main import app


def _cors_settings(origins, credentials):
    return SimpleNamespace(
        cors_allowed_origins=tuple(origins),
        cors_allow_origin_regex="",
        cors_allow_credentials=credentials,
    )


class RateLimitDecoratorTests(unittest.TestCase):
    def _endpoint(self, request):
        return "ok"

    def test_route_limit_overrides_global_limit(self):
        enabled = SimpleNamespace(rate_limit_enabled=True, rate_limit="60/minute")
        with patch("scistu.core.rate_limit.settings", enabled), patch.object(limiter, "limit") as limit:
            rate_limit("3/minute")
            limit.assert_called_once_with("3/minute")

    def test_global_limit_is_the_default(self):
        enabled = SimpleNamespace(rate_limit_enabled=True, rate_limit="60/minute")
        with patch("scistu.core.rate_limit.settings", enabled), patch.object(limiter, "limit") as limit:
            rate_limit()
            limit.assert_called_once_with("60/minute")

    def test_disabled_limit_leaves_endpoint_untouched(self):
        disabled = SimpleNamespace(rate_limit_enabled=False, rate_limit="60/minute")
        with patch("scistu.core.rate_limit.settings", disabled), patch.object(limiter, "limit") as limit:
            decorated = rate_limit("3/minute")(self._endpoint)
        self.assertIs(decorated, self._endpoint)
        limit.assert_not_called()


class CorsOptionsTests(unittest.TestCase):
    def test_session_header_is_allowed(self):
        with patch("scistu.core.cors.settings", _cors_settings(["http://localhost:3000"], False)):
            options = cors_options()
        self.assertIn("X-Session-Id", options["allow_headers"])
        self.assertIn("DELETE", options["allow_methods"])
        self.assertEqual(options["expose_headers"], ["Retry-After"])
        self.assertIsNone(options["allow_origin_regex"])
        self.assertFalse(options["allow_credentials"])

    def test_credentials_follow_settings(self):
        with patch("scistu.core.cors.settings", _cors_settings(["https://scistu.ai"], True)):
            self.assertTrue(cors_options()["allow_credentials"])

    def test_wildcard_origin_never_allows_credentials(self):
        with patch("scistu.core.cors.settings", _cors_settings(["*"], True)):
            self.assertFalse(cors_options()["allow_credentials"])

    def test_preflight_for_reader_delete(self):
        client = TestClient(app)
        origin = cors_options()["allow_origins"][0]
        response = client.options(
            "/v1/reader/articles/abc",
            headers={
                "Origin": origin,
                "Access-Control-Request-Method": "DELETE",
                "Access-Control-Request-Headers": "X-Session-Id",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], origin)


if __name__ == "__main__":
    unittest.main()
