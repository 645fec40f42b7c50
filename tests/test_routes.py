from fastapi.testclient import TestClient

from db.database import utc_today
from main import app
from routes import devotionals as devotionals_routes
from routes import search as search_routes
from utils.auth import create_session_token
from utils.devotional_store import upsert_devotional
from utils.errors import UpstreamError


def _auth(user_id="ana"):
    return {"Authorization": f"Bearer {create_session_token(user_id)}"}


def _seed_devotional():
    return upsert_devotional(
        utc_today(),
        {"text": "Jesus wept."},
        verse="Jesus wept.",
        reference="John 11:35",
        verse_translated="Jesus chorou.",
        reference_translated="João 11:35",
    )["id"]


def test_widget_returns_devotional_with_cors(app_env):
    _seed_devotional()
    client = TestClient(app)

    response = client.get("/widget/devotional")

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.json()["verse"] == "Jesus chorou."
    assert client.get("/widget/devotional", params={"language": "en"}).json()["verse"] == "Jesus wept."


def test_widget_404_when_empty(app_env):
    client = TestClient(app)

    response = client.get("/widget/devotional", params={"language": "en"})

    assert response.status_code == 404
    assert response.json() == {"error": "No devotional found"}
    assert response.headers["access-control-allow-origin"] == "*"


def test_search_route_dedups_page(app_env, monkeypatch):
    page = {
        "query": "love",
        "language": "en",
        "results": [
            {"id": "a", "reference": "John 3:16", "text": "For God so loved"},
            {"id": "b", "reference": "John 3:16", "text": "For God so loved"},
        ],
        "cursor": 2,
        "total": 2,
        "fromCache": 0,
        "fromApi": 2,
        "hasMore": False,
    }
    monkeypatch.setattr(search_routes, "search_bible", lambda *args, **kwargs: dict(page))
    client = TestClient(app)

    response = client.get("/search", params={"query": "love", "language": "en"})

    assert response.status_code == 200
    body = response.json()
    assert [r["id"] for r in body["results"]] == ["a"]
    assert body["cursor"] == 2


def test_search_route_maps_upstream_errors(app_env, monkeypatch):
    def failing(*args, **kwargs):
        raise UpstreamError("Bible API search failed: 503", status_code=503)

    monkeypatch.setattr(search_routes, "search_bible", failing)
    client = TestClient(app)

    response = client.get("/search", params={"query": "love"})

    assert response.status_code == 502
    assert response.json()["detail"] == "Bible API search failed: 503"


def test_saved_mutations_require_auth(app_env):
    devotional_id = _seed_devotional()
    client = TestClient(app)

    assert client.post(f"/saved/devotionals/{devotional_id}").status_code == 401
    assert client.get(f"/saved/devotionals/{devotional_id}").json() == {"saved": False}
    assert client.get("/saved/verses").json() == []

    response = client.post(f"/saved/devotionals/{devotional_id}", headers=_auth())
    assert response.status_code == 200
    assert client.get(f"/saved/devotionals/{devotional_id}", headers=_auth()).json() == {"saved": True}
    assert client.get(f"/saved/devotionals/{devotional_id}", headers=_auth("bia")).json() == {"saved": False}


def test_saved_verse_round_trip(app_env):
    client = TestClient(app)
    verse = {"reference": "John 3:16", "text": "For God so loved the world"}

    first = client.post("/saved/verses", json={**verse, "language": "en"}, headers=_auth())
    second = client.post("/saved/verses", json={**verse, "language": "en"}, headers=_auth())

    assert second.json()["id"] == first.json()["id"]
    assert client.get("/saved/verses/check", params=verse, headers=_auth()).json() == {"saved": True}
    removed = client.request("DELETE", "/saved/verses", json=verse, headers=_auth())
    assert removed.json()["success"] is True
    assert client.get("/saved/verses", headers=_auth()).json() == []


def test_invalid_token_is_anonymous(app_env):
    client = TestClient(app)
    token = create_session_token("ana")

    response = client.post("/logins", headers={"Authorization": f"Bearer {token}tampered"})

    assert response.status_code == 401


def test_logins_routes(app_env):
    client = TestClient(app)

    assert client.post("/logins", headers=_auth()).json()["action"] == "created"
    assert client.get("/logins/today", headers=_auth()).json() == {"loggedIn": True}
    assert client.get("/logins/stats", headers=_auth()).json()["currentStreak"] == 1
    assert len(client.get("/logins/week", headers=_auth()).json()) == 7
    assert client.get("/logins/stats").json()["totalLogins"] == 0


def test_devotional_routes(app_env, monkeypatch):
    _seed_devotional()
    monkeypatch.setattr(devotionals_routes, "fetch_daily_devotional", lambda: {"success": True, "skipped": True})
    client = TestClient(app)

    assert client.get("/devotionals/today", params={"language": "pt"}).json()["reference"] == "João 11:35"
    assert client.get(f"/devotionals/{utc_today()}").json()["verse"] == "Jesus wept."
    assert client.get("/devotionals/1999-01-01").json() is None
    assert len(client.get("/devotionals", params={"limit": 5}).json()) == 1
    assert client.post("/devotionals/fetch").json() == {"success": True, "skipped": True}
