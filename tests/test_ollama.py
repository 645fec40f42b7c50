import json

import pytest

from models.devotional import Translation, VerseSummary
from utils import ollama
from utils.errors import AIError, AIOutputError, AIRateLimitError, ConfigurationError


class FakeResponse:
    def __init__(self, status_code, payload, headers=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.reason = "OK" if self.ok else "Error"
        self.headers = headers or {}
        self._payload = payload
        self.text = json.dumps(payload)

    def json(self):
        return self._payload


def _generated(value):
    return FakeResponse(200, {"response": json.dumps(value)})


def test_generate_structured_sends_schema_and_validates(app_env, monkeypatch):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, payload=json)
        return _generated({"translation": "Deus amou o mundo."})

    monkeypatch.setattr(ollama.requests, "post", fake_post)

    result = ollama.generate_structured("prompt", Translation, temperature=0.2, max_tokens=100)

    assert result == Translation(translation="Deus amou o mundo.")
    assert captured["url"] == "http://ollama.test/api/generate"
    assert captured["payload"]["stream"] is False
    assert captured["payload"]["options"] == {"temperature": 0.2, "num_predict": 100}
    assert "translation" in captured["payload"]["format"]["properties"]


def test_rate_limit_is_typed(app_env, monkeypatch):
    body = {"error": {"code": 429, "message": "Quota exceeded"}}
    monkeypatch.setattr(
        ollama.requests, "post", lambda *a, **kw: FakeResponse(429, body, headers={"Retry-After": "4"})
    )

    with pytest.raises(AIRateLimitError) as excinfo:
        ollama.generate_structured("prompt", Translation)
    assert excinfo.value.retry_after == "4"
    assert str(excinfo.value) == "Quota exceeded"


def test_schema_mismatch_carries_raw_output(app_env, monkeypatch):
    bad = {"summary": "Curto demais mas valido.", "related_verses": ["reference", "text"]}
    monkeypatch.setattr(ollama.requests, "post", lambda *a, **kw: _generated(bad))

    with pytest.raises(AIOutputError) as excinfo:
        ollama.generate_structured("prompt", VerseSummary)
    assert excinfo.value.value == bad
    assert json.loads(excinfo.value.text) == bad


def test_generate_object_retries_transient_errors(app_env, monkeypatch):
    responses = [FakeResponse(503, {"error": "busy"}), _generated({"translation": "ok"})]
    monkeypatch.setattr(ollama.requests, "post", lambda *a, **kw: responses.pop(0))

    assert ollama.generate_object("prompt", Translation).translation == "ok"
    assert responses == []


def test_generate_object_does_not_retry_bad_output(app_env, monkeypatch):
    calls = []

    def fake_post(*args, **kwargs):
        calls.append(1)
        return FakeResponse(200, {"response": "not json"})

    monkeypatch.setattr(ollama.requests, "post", fake_post)

    with pytest.raises(AIOutputError):
        ollama.generate_object("prompt", Translation)
    assert len(calls) == 1


def test_missing_host_is_configuration_error(app_env, monkeypatch):
    monkeypatch.setenv("OLLAMA_HOST", "")
    with pytest.raises(ConfigurationError):
        ollama.generate_object("prompt", Translation)


def test_http_error_is_ai_error(app_env, monkeypatch):
    monkeypatch.setattr(ollama.requests, "post", lambda *a, **kw: FakeResponse(500, {"error": "model not found"}))
    with pytest.raises(AIError, match="model not found"):
        ollama.generate_structured("prompt", Translation)
