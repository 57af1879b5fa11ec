"""
Tests for the HTTP relay endpoints.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from dispatcher import TaskManager
from errors import TimeoutExceeded, UpstreamError
from relay import create_app


class ScriptedConversation:
    def __init__(self, client):
        self.client = client
        self.turn = 0

    async def send(self, text):
        self.turn += 1
        if text == "boom":
            raise UpstreamError(500, "boom")
        if text == "slow":
            await asyncio.sleep(10)
        return f"{text} #{self.turn}"


class ScriptedClient:
    def new_conversation(self, conversation_id=""):
        return ScriptedConversation(self)

    async def aclose(self):
        pass


@pytest.fixture
def client():
    manager = TaskManager(client_factory=ScriptedClient)
    with TestClient(create_app(manager)) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_healthz(self, client):
        assert client.get("/healthz").json()["status"] == "ok"


class TestMessages:
    def test_reply(self, client):
        response = client.post("/v1/messages", json={"user_id": "u1", "content": "hello"})
        assert response.status_code == 200
        assert response.json() == {"user_id": "u1", "reply": "hello #1"}

    def test_conversation_per_user(self, client):
        client.post("/v1/messages", json={"user_id": "u1", "content": "a"})
        second = client.post("/v1/messages", json={"user_id": "u1", "content": "b"})
        other = client.post("/v1/messages", json={"user_id": "u2", "content": "c"})

        assert second.json()["reply"] == "b #2"
        assert other.json()["reply"] == "c #1"

    def test_reset(self, client):
        client.post("/v1/messages", json={"user_id": "u1", "content": "a"})
        reset = client.post("/v1/messages", json={"user_id": "u1", "content": "!reset"})
        after = client.post("/v1/messages", json={"user_id": "u1", "content": "b"})

        assert reset.json()["reply"] == "Reset conversation done."
        assert after.json()["reply"] == "b #1"

    def test_upstream_error_is_bad_gateway(self, client):
        response = client.post("/v1/messages", json={"user_id": "u1", "content": "boom"})
        assert response.status_code == 502
        assert response.json()["type"] == UpstreamError.__name__
        assert "boom" in response.json()["error"]

    def test_timeout_is_gateway_timeout(self, client):
        response = client.post("/v1/messages", json={"user_id": "u1", "content": "slow", "timeout": 0.05})
        assert response.status_code == 504
        assert response.json()["type"] == TimeoutExceeded.__name__

    def test_validation(self, client):
        assert client.post("/v1/messages", json={"user_id": "", "content": "x"}).status_code == 422
        assert client.post("/v1/messages", json={"content": "x"}).status_code == 422
        assert client.post("/v1/messages", json={"user_id": "u", "content": "x", "timeout": 0}).status_code == 422

    def test_request_id_header(self, client):
        response = client.post(
            "/v1/messages",
            json={"user_id": "u1", "content": "hi"},
            headers={"X-Request-ID": "abc123"},
        )
        assert response.headers["x-request-id"] == "abc123"
