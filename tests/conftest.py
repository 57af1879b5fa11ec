"""
Shared fixtures and fakes for the relay test suite.

The ChatGPT backend and the identity provider are faked with
httpx.MockTransport handlers that record every request, so tests can assert
on the exact wire traffic without any network access.
"""

import base64
import json
from typing import Callable, List, Optional, Union

import httpx
import pytest


# ============================================================================
# Conversation backend
# ============================================================================


def conversation_frame(
    text: Optional[str],
    message_id: str = "m1",
    conversation_id: Optional[str] = "c1",
    error: Optional[str] = None,
) -> str:
    """JSON payload of one conversation stream frame"""
    frame = {
        "message": {
            "id": message_id,
            "role": "assistant",
            "content": {"content_type": "text", "parts": [text] if text is not None else []},
        },
        "error": error,
    }
    if conversation_id is not None:
        frame["conversation_id"] = conversation_id
    return json.dumps(frame)


def sse_response(*payloads: str, done: bool = True) -> httpx.Response:
    """Event-stream response carrying the given data payloads"""
    body = "".join(f"data: {payload}\n\n" for payload in payloads)
    if done:
        body += "data: [DONE]\n\n"
    return httpx.Response(200, headers={"content-type": "text/event-stream"}, text=body)


Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeChatBackend:
    """Session endpoint plus conversation endpoint of the chat web app

    Conversation replies are served from a script; when the script runs
    out, every message is echoed back as "echo: <text>" with message ids
    m1, m2, ... in one conversation "c1".
    """

    def __init__(self, access_token: str = "A", expires: str = "2099-01-01T00:00:00Z"):
        self.access_token = access_token
        self.expires = expires
        self.session_status = 200
        self.requests: List[httpx.Request] = []
        self.conversation_requests: List[httpx.Request] = []
        self.conversation_bodies: List[dict] = []
        self.session_calls = 0
        self.script: List[Reply] = []
        self._echo_count = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/auth/session":
            self.session_calls += 1
            if self.session_status != 200:
                return httpx.Response(self.session_status, text="denied")
            return httpx.Response(200, json={"accessToken": self.access_token, "expires": self.expires})

        if request.url.path == "/backend-api/conversation":
            self.conversation_requests.append(request)
            body = json.loads(request.content)
            self.conversation_bodies.append(body)
            if self.script:
                reply = self.script.pop(0)
                return reply(request) if callable(reply) else reply
            self._echo_count += 1
            text = body["messages"][0]["content"]["parts"][0]
            return sse_response(conversation_frame(f"echo: {text}", message_id=f"m{self._echo_count}"))

        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def chat_backend() -> FakeChatBackend:
    return FakeChatBackend()


# ============================================================================
# Identity provider
# ============================================================================

CHAT = "https://chat.openai.com"
AUTH0 = "https://auth0.openai.com"

# "<svg/>" base64 encoded
TINY_SVG_CAPTCHA = "data:image/svg+xml;base64,PHN2Zy8+"


def svg_data_url(svg: str) -> str:
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode()).decode()


class FakeIdentityProvider:
    """Happy-path login endpoints; tests override single steps"""

    def __init__(self, captcha: str = "", access_token: str = "T", expires: str = "2099-01-01T00:00:00Z"):
        self.captcha = captcha
        self.access_token = access_token
        self.expires = expires
        self.requests: List[httpx.Request] = []
        self.overrides = {}

    @property
    def trail(self) -> List[tuple]:
        """(method, host, path) of every request in order"""
        return [(r.method, r.url.host, r.url.path) for r in self.requests]

    def form(self, path: str) -> dict:
        for request in self.requests:
            if request.url.path == path and request.method == "POST":
                return dict(httpx.QueryParams(request.content.decode()))
        raise AssertionError(f"no POST to {path}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.host, request.url.path)
        if key in self.overrides:
            return self.overrides[key](request)

        host, path = request.url.host, request.url.path
        if host == "chat.openai.com":
            if path == "/auth/login":
                return httpx.Response(200, text="<html></html>", headers={"set-cookie": "__cf_bm=1; Path=/"})
            if path == "/api/auth/csrf":
                return httpx.Response(200, json={"csrfToken": "csrf-1"})
            if path == "/api/auth/signin/auth0":
                return httpx.Response(200, json={"url": f"{AUTH0}/authorize?client_id=x&state=pre"})
            if path == "/api/auth/callback/auth0":
                return httpx.Response(302, headers={"location": "/"})
            if path == "/":
                return httpx.Response(307, headers={"location": "/chat"})
            if path == "/chat":
                next_data = json.dumps({"props": {"pageProps": {"accessToken": self.access_token}}})
                html = f'<html><script id="__NEXT_DATA__" type="application/json">{next_data}</script></html>'
                return httpx.Response(200, text=html)
            if path == "/api/auth/session":
                return httpx.Response(200, json={"accessToken": self.access_token, "expires": self.expires})

        if host == "auth0.openai.com":
            if path == "/authorize":
                return httpx.Response(302, headers={"location": "/u/login/identifier?state=S1"})
            if path == "/u/login/identifier" and request.method == "GET":
                img = f'<img alt="captcha" src="{self.captcha}">' if self.captcha else ""
                return httpx.Response(200, text=f"<html><form>{img}</form></html>")
            if path == "/u/login/identifier" and request.method == "POST":
                return httpx.Response(302, headers={"location": "/u/login/password?state=S1"})
            if path == "/u/login/password" and request.method == "POST":
                return httpx.Response(302, headers={"location": "/authorize/resume?state=S2"})
            if path == "/authorize/resume":
                return httpx.Response(302, headers={"location": f"{CHAT}/api/auth/callback/auth0?code=abc&state=S2"})

        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()
