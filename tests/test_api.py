"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from arena.app import app
from arena.database import Vote
from arena.leaderboard import LeaderboardReader
from arena.vote_service import VoteService


def _vote(client, winner, loser, device="tester"):
    return client.post(
        "/api/vote",
        json={"winnerId": winner, "loserId": loser},
        headers={"X-Device-Id": device, "User-Agent": "pytest-agent"},
    )


def _locked(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_root_is_html(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Company Arena" in response.text


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unknown_route_is_404_with_error_shape(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_bare_options_is_empty_204(client):
    response = client.options("/api/vote")
    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"


def test_cors_preflight(client):
    response = client.options(
        "/api/vote",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers


def test_companies_sorted_by_score(client, add_company):
    add_company("Low", score=300)
    add_company("High", score=900)
    add_company("Mid", score=500)

    response = client.get("/api/companies")

    assert response.status_code == 200
    body = response.json()
    assert [c["id"] for c in body] == ["High", "Mid", "Low"]
    assert set(body[0]) == {"id", "name", "logo", "score", "createdAt"}


def test_companies_page_is_capped(client, add_company, override_settings):
    for i in range(5):
        add_company(f"C{i}", score=500 + i)
    override_settings(leaderboard_page_size=3)

    body = client.get("/api/companies", params={"limit": 50}).json()

    assert [c["id"] for c in body] == ["C4", "C3", "C2"]


def test_battle_returns_two_distinct(client, add_company):
    add_company("A")
    add_company("B")
    add_company("C")

    for _ in range(20):
        response = client.get("/api/battle")
        assert response.status_code == 200
        pair = response.json()
        assert len(pair) == 2
        assert pair[0]["id"] != pair[1]["id"]
        assert set(pair[0]) == {"id", "name", "logo", "score"}


def test_battle_with_one_company_is_400(client, add_company):
    add_company("Solo")

    response = client.get("/api/battle")

    assert response.status_code == 400
    assert response.json() == {"error": "Not enough companies"}


def test_vote_round_trip(client, add_company):
    add_company("A")
    add_company("B")

    response = _vote(client, "A", "B")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "scoreChange": 16,
        "winnerScore": 516,
        "loserScore": 492,
        "nextOpponent": None,
    }
    scores = {c["id"]: c["score"] for c in client.get("/api/companies").json()}
    assert scores == {"A": 516, "B": 492}


def test_vote_suggests_next_opponent(client, add_company):
    for name in ("A", "B", "C"):
        add_company(name)

    body = _vote(client, "A", "B").json()

    assert body["nextOpponent"]["id"] == "C"


def test_vote_stores_device_identity_and_user_agent(client, add_company, db):
    add_company("A")
    add_company("B")

    _vote(client, "A", "B", device="phone-1")

    vote = db.query(Vote).one()
    assert vote.identity_key == "DEVICE#phone-1"
    assert vote.user_agent == "pytest-agent"


def test_vote_without_device_uses_forwarded_ip(client, add_company, db):
    add_company("A")
    add_company("B")

    client.post(
        "/api/vote",
        json={"winnerId": "A", "loserId": "B"},
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )

    assert db.query(Vote).one().identity_key == "IP#203.0.113.7"


def test_vote_missing_ids_is_400(client, add_company):
    add_company("A")

    response = client.post("/api/vote", json={"winnerId": "A"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing winnerId or loserId"}


def test_vote_same_ids_is_400(client, add_company):
    add_company("A")
    assert _vote(client, "A", "A").status_code == 400


def test_vote_unknown_id_is_400(client, add_company):
    add_company("A")

    response = _vote(client, "A", "Ghost")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid IDs"}


def test_vote_malformed_body_is_400(client):
    response = client.post("/api/vote", json={"winnerId": ["A"], "loserId": 3})
    assert response.status_code == 400
    assert "error" in response.json()


def test_vote_rate_limited_is_429(client, add_company, override_settings):
    add_company("A")
    add_company("B")
    override_settings(rate_limit_max=1)

    assert _vote(client, "A", "B", device="same").status_code == 200
    response = _vote(client, "B", "A", device="same")

    assert response.status_code == 429
    assert response.json() == {"error": "Too many votes"}
    assert _vote(client, "B", "A", device="other").status_code == 200


def test_vote_store_failure_is_500(client, add_company, monkeypatch):
    from arena.exceptions import TransientStoreFailure
    from arena.vote_service import VoteService

    add_company("A")
    add_company("B")

    def failing_commit(self, *args, **kwargs):
        raise TransientStoreFailure("Could not process vote", details="boom")

    monkeypatch.setattr(VoteService, "_commit", failing_commit)

    response = _vote(client, "A", "B")

    assert response.status_code == 500
    assert response.json() == {"error": "Could not process vote"}


def test_vote_store_timeout_is_500(client, add_company, db, monkeypatch):
    add_company("A")
    add_company("B")
    monkeypatch.setattr(VoteService, "_fetch_pair", _locked)

    response = _vote(client, "A", "B")

    assert response.status_code == 500
    assert response.json() == {"error": "Could not process vote"}
    assert db.query(Vote).count() == 0


def test_vote_survives_next_opponent_failure(client, add_company, db, monkeypatch):
    for name in ("A", "B", "C"):
        add_company(name)
    monkeypatch.setattr(LeaderboardReader, "roster", _locked)

    response = _vote(client, "A", "B")

    assert response.status_code == 200
    assert response.json()["nextOpponent"] is None
    assert response.json()["winnerScore"] == 516
    assert db.query(Vote).count() == 1


@pytest.mark.parametrize("path, method", [
    ("/api/companies", "scalars"),
    ("/api/battle", "scalars"),
    ("/api/stats", "execute"),
])
def test_read_store_timeout_is_500(client, add_company, monkeypatch, path, method):
    add_company("A")
    add_company("B")
    monkeypatch.setattr(Session, method, _locked)

    response = client.get(path)

    assert response.status_code == 500
    assert response.json() == {"error": "Store unavailable"}


def test_unexpected_error_is_generic_500(add_company, monkeypatch):
    from arena.routes import companies as companies_routes

    add_company("A")
    add_company("B")

    def broken_pick_two(roster):
        raise RuntimeError("internal detail")

    monkeypatch.setattr(companies_routes, "pick_two", broken_pick_two)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/battle")

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong!"}


def test_stats(client, add_company):
    add_company("A")
    add_company("B")
    add_company("C")
    _vote(client, "A", "B", device="d1")
    _vote(client, "C", "B", device="d2")

    response = client.get("/api/stats")

    assert response.status_code == 200
    assert response.json() == {"totalVotes": 2, "totalCompanies": 3}


def test_stats_empty(client):
    assert client.get("/api/stats").json() == {"totalVotes": 0, "totalCompanies": 0}
