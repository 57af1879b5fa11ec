"""
Unit tests for the browser-mimicking session and header profiles.
"""

import httpx
import pytest

from chatgpt_auth import BrowserSession
from chatgpt_auth.browser import redact_headers
from errors import NetworkFailure
from headers import HEADER_PROFILES, PSEUDO_HEADER_ORDER, USER_AGENT, build_headers


class TestHeaderProfiles:
    def test_build_headers_keeps_profile_order(self):
        headers = build_headers("csrf", referer="https://chat.openai.com/auth/login")
        assert [name for name, _ in headers] == [name for name, _ in HEADER_PROFILES["csrf"]]

    def test_missing_placeholder_drops_header(self):
        names = [name for name, _ in build_headers("csrf")]
        assert "referer" not in names

    def test_user_agent_is_filled(self):
        headers = dict(build_headers("landing", user_agent="UA/1"))
        assert headers["user-agent"] == "UA/1"

    def test_build_headers_is_stable(self):
        assert build_headers("credentials", origin="o", referer="r") == build_headers(
            "credentials", origin="o", referer="r"
        )

    def test_redact_headers(self):
        redacted = dict(redact_headers([("Cookie", "secret"), ("authorization", "Bearer x"), ("dnt", "1")]))
        assert redacted == {"Cookie": "[REDACTED]", "authorization": "[REDACTED]", "dnt": "1"}


class TestBrowserSession:
    @pytest.mark.asyncio
    async def test_headers_sent_in_given_order(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append([name.decode().lower() for name, _ in request.headers.raw])
            return httpx.Response(200)

        async with BrowserSession(transport=httpx.MockTransport(handler)) as session:
            await session.get("https://chat.openai.com/auth/login", build_headers("landing"))

        expected = [name for name, _ in build_headers("landing")]
        sent = [name for name in seen[0] if name in expected]
        assert sent == expected

    @pytest.mark.asyncio
    async def test_client_defaults_are_not_merged(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers)
            return httpx.Response(200)

        async with BrowserSession(transport=httpx.MockTransport(handler)) as session:
            await session.get("https://chat.openai.com/", [("accept", "*/*")])

        assert "python-httpx" not in seen[0].get("user-agent", "")

    @pytest.mark.asyncio
    async def test_redirects_disabled_is_scoped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/start":
                return httpx.Response(302, headers={"location": "/end"})
            return httpx.Response(200)

        async with BrowserSession(transport=httpx.MockTransport(handler)) as session:
            async with session.redirects_disabled():
                response = await session.get("https://example.com/start", [])
                assert response.status_code == 302
            assert session.follow_redirects is True

            response = await session.get("https://example.com/start", [])
            assert response.status_code == 200
            assert response.url.path == "/end"

    @pytest.mark.asyncio
    async def test_redirect_policy_restored_after_error(self):
        session = BrowserSession(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with pytest.raises(RuntimeError):
            async with session.redirects_disabled():
                raise RuntimeError("boom")
        assert session.follow_redirects is True
        await session.aclose()

    @pytest.mark.asyncio
    async def test_cookies_persist_across_requests(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("cookie"))
            return httpx.Response(200, headers={"set-cookie": "sid=abc; Path=/"})

        async with BrowserSession(transport=httpx.MockTransport(handler)) as session:
            await session.get("https://chat.openai.com/a", [])
            await session.get("https://chat.openai.com/b", [])

        assert seen[0] is None
        assert seen[1] == "sid=abc"
        assert session.cookies.get("sid") == "abc"

    @pytest.mark.asyncio
    async def test_post_is_form_encoded(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.content)
            return httpx.Response(200)

        async with BrowserSession(transport=httpx.MockTransport(handler)) as session:
            await session.post("https://example.com/form", [], data=[("a", "1"), ("b", "x y")])

        assert seen[0] == b"a=1&b=x+y"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with BrowserSession(transport=httpx.MockTransport(handler)) as session:
            with pytest.raises(NetworkFailure):
                await session.get("https://example.com/", [])

    def test_fingerprint_defaults(self):
        session = BrowserSession(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert session.user_agent == USER_AGENT
        assert session.pseudo_header_order == PSEUDO_HEADER_ORDER
        assert "Chrome/107" in USER_AGENT
