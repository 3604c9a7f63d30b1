from __future__ import annotations

import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import StaticSource, build_corpus
from vocabquiz.app import create_app
from vocabquiz.config import settings
from vocabquiz.errors import SourceFormatError
from vocabquiz.globals import session_store, vocab_manager


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(vocab_manager, "source", StaticSource(build_corpus()))
    with TestClient(create_app()) as test_client:
        yield test_client
    session_store.sessions.clear()
    session_store.last_seen.clear()


def current_session(client):
    return session_store.get(client.cookies.get(settings.SESSION_COOKIE_NAME))


def test_setup_page_lists_topics(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "animals (5)" in resp.text
    assert "food (3)" in resp.text
    assert 'value="10"' in resp.text


def test_topics_api(client):
    assert client.get("/api/topics").json() == [
        {"id": "animals", "name": "animals", "count": 5},
        {"id": "food", "name": "food", "count": 3},
    ]


def test_start_rejects_non_numeric_count(client):
    resp = client.post("/start", data={"count": "abc", "topic": "all"})
    assert resp.status_code == 400
    assert "whole number" in resp.text
    state = client.get("/api/state").json()
    assert state["phase"] == "setup"


def test_start_and_answer_flow(client):
    resp = client.post("/start", data={"count": "3", "topic": "animals"})
    assert resp.status_code == 200
    assert resp.url.path == "/quiz"

    state = client.get("/api/state").json()
    assert state["phase"] == "testing"
    assert state["total"] == 3
    assert state["submitted"] is False

    body = client.post("/api/answer", data={"index": 0, "value": "cat"}).json()
    assert body == {"applied": True, "answered_count": 1, "total": 3}
    assert not client.post("/api/answer", data={"index": 7, "value": "x"}).json()["applied"]

    client.post("/submit")
    assert not client.post("/api/answer", data={"index": 0, "value": "dog"}).json()["applied"]
    state = client.get("/api/state").json()
    assert state["submitted"] is True
    assert state["answers"] == {"0": "cat"}
    assert state["result"]["total"] == 3


def test_quiz_page_redirects_to_setup_without_round(client):
    resp = client.get("/quiz")
    assert resp.url.path == "/"


def test_retry_wrong_via_api(client):
    client.post("/start", data={"count": "4", "topic": "all"})
    assert client.post("/api/retry").status_code == 409

    session = current_session(client)
    first = session.questions[0]
    client.post("/api/answer", data={"index": 0, "value": first.answer})
    client.post("/submit")

    body = client.post("/api/retry").json()
    assert body == {"retried": 3, "nothing_to_retry": False}
    state = client.get("/api/state").json()
    assert state["total"] == 3
    assert state["answers"] == {}
    assert state["elapsed_seconds"] == 0
    assert first.word not in {q.word for q in session.questions}


def test_retry_with_nothing_wrong_shows_notice(client):
    client.post("/start", data={"count": "2", "topic": "food"})
    session = current_session(client)
    for i, question in enumerate(session.questions):
        client.post("/api/answer", data={"index": i, "value": question.answer})
    client.post("/submit")

    resp = client.post("/retry")
    assert "No wrong answers to retry." in resp.text
    assert session.submitted
    assert len(session.questions) == 2


def test_empty_topic_shows_notice(client):
    resp = client.post("/start", data={"count": "5", "topic": "space"})
    assert resp.url.path == "/quiz"
    assert "No words match this topic" in resp.text


def test_back_to_setup_and_restart(client):
    client.post("/start", data={"count": "2", "topic": "food"})
    client.post("/submit")
    resp = client.post("/restart")
    assert resp.url.path == "/quiz"
    assert client.get("/api/state").json()["submitted"] is False

    resp = client.post("/setup")
    assert resp.url.path == "/"
    assert client.get("/api/state").json()["phase"] == "setup"


def test_reset_discards_session(client):
    client.post("/start", data={"count": "2"})
    assert client.post("/api/reset").json() == {"status": "success"}
    client.cookies.clear()
    assert client.get("/api/state").status_code == 401


def test_reload_after_failed_fetch(client, monkeypatch):
    monkeypatch.setattr(vocab_manager, "source", StaticSource(error=SourceFormatError("bad feed")))
    assert client.post("/api/reload").json() == {"entries": 0, "error": "bad feed"}
    assert "No vocabulary available" in client.get("/").text

    monkeypatch.setattr(vocab_manager, "source", StaticSource(build_corpus()))
    assert client.post("/api/reload").json() == {"entries": 8, "error": ""}


def test_confetti_fires_only_on_first_render_after_submit(client):
    client.post("/start", data={"count": "2", "topic": "food"})
    session = current_session(client)
    for i, question in enumerate(session.questions):
        client.post("/api/answer", data={"index": i, "value": question.answer})

    assert "canvas-confetti" in client.post("/submit").text
    assert "canvas-confetti" not in client.get("/quiz").text
    resp = client.post("/retry")
    assert "No wrong answers to retry." in resp.text
    assert "canvas-confetti" not in resp.text


def test_low_score_does_not_celebrate(client):
    client.post("/start", data={"count": "3", "topic": "animals"})
    assert "canvas-confetti" not in client.post("/submit").text


class SlowSource(StaticSource):
    def __init__(self, delay: float):
        super().__init__(build_corpus())
        self.delay = delay

    def load(self):
        time.sleep(self.delay)
        return super().load()


def test_reload_does_not_block_the_event_loop(monkeypatch):
    monkeypatch.setattr(vocab_manager, "source", SlowSource(0.3))
    app = create_app()

    async def scenario():
        beats = 0

        async def heartbeat():
            nonlocal beats
            while True:
                await asyncio.sleep(0.02)
                beats += 1

        task = asyncio.create_task(heartbeat())
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
            resp = await c.post("/api/reload")
        task.cancel()
        return resp, beats

    resp, beats = asyncio.run(scenario())
    assert resp.json() == {"entries": 8, "error": ""}
    assert beats >= 5
