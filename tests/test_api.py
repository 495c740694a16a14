"""Tests for API routes."""
from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from cinescout.main import app
from cinescout.models.events import iter_payloads
from cinescout.models.upstream import AssistantTurn, FinalResult, ToolInvocation
from cinescout.services.keepalive import KeepaliveScheduler

URL = "/api/movie-recommendations"
SEARCH_TURN = AssistantTurn(
    blocks=(ToolInvocation(name="web_search", input={"query": "Inception reviews"}),)
)


class FakeSession:
    def __init__(self, *items, fail: Exception | None = None, delay: float = 0.0):
        self.items = items
        self.fail = fail
        self.delay = delay
        self.opened = 0

    async def messages(self):
        self.opened += 1
        for item in self.items:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield item
        if self.fail is not None:
            raise self.fail


@pytest.fixture
def client():
    return TestClient(app)


def stream_with(session: FakeSession):
    return patch(
        "cinescout.api.routes.recommendations.open_research_session",
        return_value=session,
    )


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "cinescout"}


@pytest.mark.parametrize(
    "body",
    [
        {"favoriteMovies": []},
        {"moviePreferences": {}},
        {"favoriteMovies": "Inception"},
        {"favoriteMovies": None},
    ],
)
def test_bad_favorites_rejected_before_streaming(client, api_key, body):
    opener = MagicMock()
    with patch("cinescout.api.routes.recommendations.open_research_session", opener):
        response = client.post(URL, json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "favoriteMovies must be a non-empty array"}
    opener.assert_not_called()


def test_non_string_titles_rejected(client, api_key):
    response = client.post(URL, json={"favoriteMovies": ["Inception", 42]})

    assert response.status_code == 400
    assert "favoriteMovies" in response.json()["error"]


def test_blank_titles_rejected(client, api_key):
    response = client.post(URL, json={"favoriteMovies": ["  "]})

    assert response.status_code == 400


def test_non_object_body_rejected(client, api_key):
    response = client.post(URL, json=["Inception"])

    assert response.status_code == 400
    assert response.json() == {"error": "Request body must be a JSON object"}


def test_invalid_json_rejected(client, api_key):
    response = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_missing_api_key_is_server_error(client, monkeypatch):
    from cinescout.config import settings

    monkeypatch.setattr(settings, "anthropic_api_key", "")
    response = client.post(URL, json={"favoriteMovies": ["Inception"]})

    assert response.status_code == 500
    assert response.json() == {"error": "ANTHROPIC_API_KEY environment variable is not set"}


def test_validation_runs_before_credential_check(client, monkeypatch):
    from cinescout.config import settings

    monkeypatch.setattr(settings, "anthropic_api_key", "")
    response = client.post(URL, json={"favoriteMovies": []})

    assert response.status_code == 400


def test_stream_headers_and_search_event(client, api_key):
    session = FakeSession(SEARCH_TURN, FinalResult(success=True, result="Try Memento and Primer."))
    with stream_with(session) as opener:
        response = client.post(URL, json={"favoriteMovies": ["Inception"], "moviePreferences": {}})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"

    assert iter_payloads(response.content) == [
        {"type": "start", "message": "Starting deep research into your movie taste..."},
        {"type": "search", "query": "Inception reviews"},
        {"type": "result", "content": "Try Memento and Primer."},
        {"type": "done"},
    ]
    recommendation = opener.call_args.args[0]
    assert recommendation.favorite_movies == ("Inception",)
    assert session.opened == 1
    assert KeepaliveScheduler.active_count() == 0


def test_stream_frames_are_sse_data_lines(client, api_key):
    with stream_with(FakeSession(FinalResult(success=True, result="ok"))):
        response = client.post(URL, json={"favoriteMovies": ["Inception"]})

    assert response.text.endswith('data: {"type": "done"}\n\n')
    assert response.text.startswith("data: ")


def test_preferences_default_to_empty_mapping(client, api_key):
    with stream_with(FakeSession()) as opener:
        client.post(URL, json={"favoriteMovies": ["Inception", "Primer"], "moviePreferences": None})

    recommendation = opener.call_args.args[0]
    assert recommendation.movie_preferences == {}
    assert recommendation.favorite_movies == ("Inception", "Primer")


def test_stream_failure_result(client, api_key):
    session = FakeSession(FinalResult(success=False, errors=("timeout", "rate limited")))
    with stream_with(session):
        response = client.post(URL, json={"favoriteMovies": ["Inception"]})

    assert iter_payloads(response.content)[-2:] == [
        {"type": "error", "message": "timeout; rate limited"},
        {"type": "done"},
    ]


def test_stream_upstream_raises_midway(client, api_key):
    session = FakeSession(SEARCH_TURN, fail=RuntimeError("research process crashed"))
    with stream_with(session):
        response = client.post(URL, json={"favoriteMovies": ["Inception"]})

    assert response.status_code == 200
    assert [p["type"] for p in iter_payloads(response.content)] == [
        "start",
        "search",
        "error",
        "done",
    ]
    assert iter_payloads(response.content)[2]["message"] == "research process crashed"
    assert KeepaliveScheduler.active_count() == 0


def test_stream_accepts_loosely_shaped_upstream_messages(client, api_key):
    session = FakeSession(
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "Reading about Primer."}]}},
        {"type": "tool_use_summary", "summary": "Read 2 reviews"},
        {"type": "mystery"},
        {"type": "result", "subtype": "success", "result": "Watch Coherence."},
    )
    with stream_with(session):
        response = client.post(URL, json={"favoriteMovies": ["Primer"]})

    assert iter_payloads(response.content)[1:] == [
        {"type": "thinking", "content": "Reading about Primer."},
        {"type": "summary", "content": "Read 2 reviews"},
        {"type": "result", "content": "Watch Coherence."},
        {"type": "done"},
    ]


def test_open_research_session_builds_session_from_request(api_key):
    from cinescout.api.routes.recommendations import open_research_session
    from cinescout.models.schemas import validate_recommendation_request

    recommendation = validate_recommendation_request(
        {"favoriteMovies": ["Inception"], "moviePreferences": {"Inception": "dream logic"}}
    )
    session = open_research_session(recommendation)

    assert session.favorite_movies == ["Inception"]
    assert "What I love about it: dream logic" in session.task_prompt
