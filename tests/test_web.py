import pytest
from fastapi.testclient import TestClient

from hos_research.config import Settings
from hos_research.errors import LLMProviderError
from hos_research.kv_store import KVStore
from hos_research.web import create_app

PREFIX = "/make-server-8d51d9e2"


def _settings(tmp_path, **overrides) -> Settings:
    fields = dict(_env_file=None, openai_api_key=None, public_anon_key=None, kv_db_path=tmp_path / "kv.db")
    fields.update(overrides)
    return Settings(**fields)


def _client(tmp_path, provider=None, store=None, **overrides) -> TestClient:
    settings = _settings(tmp_path, **overrides)
    app = create_app(settings, provider=provider, store=store or KVStore(settings.kv_db_path))
    return TestClient(app)


@pytest.fixture
def client(tmp_path, fake_provider) -> TestClient:
    return _client(tmp_path, provider=fake_provider)


class BrokenStore(KVStore):
    def health_check(self) -> None:
        raise RuntimeError("disk full")


def test_health_round_trips_store(client) -> None:
    resp = client.get(f"{PREFIX}/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"
    assert data["timestamp"]


def test_health_reports_store_failure(tmp_path) -> None:
    client = _client(tmp_path, store=BrokenStore(tmp_path / "broken.db"))
    resp = client.get(f"{PREFIX}/health")
    assert resp.status_code == 500
    assert resp.json()["database"] == "failed"
    assert resp.json()["error"] == "disk full"


def test_cors_allows_any_origin(client) -> None:
    resp = client.get(f"{PREFIX}/health", headers={"Origin": "https://dashboard.example.com"})
    assert resp.headers["access-control-allow-origin"] == "*"


def test_chat_returns_content_and_usage(client, fake_provider) -> None:
    resp = client.post(
        f"{PREFIX}/ai/chat",
        json={"messages": [{"role": "user", "content": "hello"}], "temperature": 0.2},
    )
    assert resp.status_code == 200
    assert resp.json() == {"content": fake_provider.reply, "tokensUsed": 42, "model": "fake-model"}
    call = fake_provider.calls[0]
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 1000
    assert call["messages"][0]["role"] == "system"


def test_chat_rejects_empty_messages(client) -> None:
    resp = client.post(f"{PREFIX}/ai/chat", json={"messages": []})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid request")


def test_chat_without_api_key(tmp_path) -> None:
    client = _client(tmp_path)
    resp = client.post(f"{PREFIX}/ai/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 500
    assert "not configured" in resp.json()["error"]


def test_chat_passes_upstream_status_through(tmp_path, provider_factory) -> None:
    provider = provider_factory(error=LLMProviderError("rate limited", status_code=429))
    client = _client(tmp_path, provider=provider)
    resp = client.post(f"{PREFIX}/ai/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 429
    assert resp.json() == {"error": "AI service error"}


def test_analyze_returns_parsed_result(client, acme_request) -> None:
    resp = client.post(f"{PREFIX}/financial/analyze", json=acme_request)
    assert resp.status_code == 200
    data = resp.json()
    assert data["symbol"] == "ACME"
    assert data["recommendation"] == "sell"
    assert data["targetPrice"] == 142.5
    assert len(data["risks"]) == 3
    assert data["opportunities"] == ["Expansion into Asia", "New product line"]
    assert isinstance(data["technicalIndicators"], dict)
    assert isinstance(data["generatedAt"], int)


def test_analyze_twice_gives_same_result(client, acme_request) -> None:
    first = client.post(f"{PREFIX}/financial/analyze", json=acme_request).json()
    second = client.post(f"{PREFIX}/financial/analyze", json=acme_request).json()
    first.pop("generatedAt")
    second.pop("generatedAt")
    assert first == second


def test_analyze_empty_history_has_no_infinite_values(client, acme_request) -> None:
    acme_request["historicalData"] = []
    resp = client.post(f"{PREFIX}/financial/analyze", json=acme_request)
    assert resp.status_code == 200
    assert "Infinity" not in resp.text
    assert resp.json()["technicalIndicators"] == {}


def test_analyze_rejects_malformed_stock(client, acme_request) -> None:
    del acme_request["stock"]["price"]
    resp = client.post(f"{PREFIX}/financial/analyze", json=acme_request)
    assert resp.status_code == 400
    assert "price" in resp.json()["error"]


def test_analyze_upstream_failure(tmp_path, provider_factory, acme_request) -> None:
    client = _client(tmp_path, provider=provider_factory(error=LLMProviderError("boom", status_code=502)))
    resp = client.post(f"{PREFIX}/financial/analyze", json=acme_request)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Analysis generation failed"}


def test_report_returns_text(client, acme_request, analyst_reply) -> None:
    body = dict(acme_request, symbol="ACME")
    resp = client.post(f"{PREFIX}/financial/report", json=body)
    assert resp.status_code == 200
    assert resp.json() == {"report": analyst_reply}


def test_report_upstream_failure(tmp_path, provider_factory, acme_request) -> None:
    client = _client(tmp_path, provider=provider_factory(error=LLMProviderError("boom")))
    resp = client.post(f"{PREFIX}/financial/report", json=dict(acme_request, symbol="ACME"))
    assert resp.status_code == 500
    assert resp.json() == {"error": "Report generation failed"}


def test_bearer_token_required_when_configured(tmp_path, fake_provider, acme_request) -> None:
    client = _client(tmp_path, provider=fake_provider, public_anon_key="anon-key")

    assert client.get(f"{PREFIX}/health").status_code == 200

    denied = client.post(f"{PREFIX}/financial/analyze", json=acme_request)
    assert denied.status_code == 401
    assert "error" in denied.json()

    allowed = client.post(
        f"{PREFIX}/financial/analyze",
        json=acme_request,
        headers={"Authorization": "Bearer anon-key"},
    )
    assert allowed.status_code == 200


def test_user_data_lifecycle(client) -> None:
    key = "user:u1:module:habits"
    saved = client.post(f"{PREFIX}/user-data", json={"key": key, "userId": "u1", "data": {"streak": 3}})
    assert saved.json() == {"success": True, "key": key}

    loaded = client.get(f"{PREFIX}/user-data", params={"key": key}).json()
    assert loaded["exists"] is True
    assert loaded["data"] == {"streak": 3}
    assert loaded["userId"] == "u1"
    assert loaded["updatedAt"]

    everything = client.get(f"{PREFIX}/user-data/all", params={"userId": "u1"}).json()
    assert everything == {"data": {"habits": {"streak": 3}}}

    assert client.delete(f"{PREFIX}/user-data", params={"key": key}).json() == {"success": True}
    missing = client.get(f"{PREFIX}/user-data", params={"key": key}).json()
    assert missing == {"data": None, "userId": None, "exists": False}


def test_user_data_requires_key(client) -> None:
    resp = client.get(f"{PREFIX}/user-data")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required parameter: key"}

    resp = client.post(f"{PREFIX}/user-data", json={"data": 1})
    assert resp.status_code == 400
