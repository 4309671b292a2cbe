"""End-to-end flow through the HTTP API: setup, voting, ties, tie-breaks, champion."""
from fastapi.testclient import TestClient

from popcontest.models.vote import TIE_BREAK_ACTOR_ID


def _create_tournament(client: TestClient, sizes=None, **extra) -> int:
    response = client.post("/api/tournaments", json={"name": "Snack Showdown", **extra})
    assert response.status_code == 201
    tid = response.json()["id"]
    sizes = sizes or {"A": 2, "B": 2, "C": 2, "D": 2}
    for quadrant, size in sizes.items():
        for seed in range(1, size + 1):
            r = client.post(
                f"/api/tournaments/{tid}/contestants",
                json={"name": f"{quadrant}{seed}", "seed": seed, "quadrant": quadrant.lower()},
            )
            assert r.status_code == 201, r.text
    return tid


def _bracket(client: TestClient, tid: int) -> dict:
    response = client.get(f"/api/tournaments/{tid}/bracket")
    assert response.status_code == 200
    return response.json()


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_and_list(client: TestClient):
    tid = _create_tournament(client)
    listed = client.get("/api/tournaments").json()
    assert [t["id"] for t in listed] == [tid]

    detail = client.get(f"/api/tournaments/{tid}").json()
    assert detail["status"] == "DRAFT"
    assert detail["allow_byes"] is False

    contestants = client.get(f"/api/tournaments/{tid}/contestants").json()
    assert len(contestants) == 8
    assert {c["quadrant"] for c in contestants} == {"A", "B", "C", "D"}


def test_missing_tournament_404(client: TestClient):
    assert client.get("/api/tournaments/999").status_code == 404
    assert client.get("/api/tournaments/999/bracket").status_code == 404
    assert client.post("/api/tournaments/999/start").status_code == 404


def test_duplicate_seed_rejected(client: TestClient):
    tid = _create_tournament(client)
    r = client.post(f"/api/tournaments/{tid}/contestants", json={"name": "Dup", "seed": 1, "quadrant": "A"})
    assert r.status_code == 400


def test_unknown_quadrant_rejected(client: TestClient):
    tid = _create_tournament(client)
    r = client.post(f"/api/tournaments/{tid}/contestants", json={"name": "E1", "seed": 1, "quadrant": "E"})
    assert r.status_code == 400


def test_start_with_uneven_quadrants_fails(client: TestClient):
    tid = _create_tournament(client, sizes={"A": 2, "B": 2, "C": 2, "D": 1})
    r = client.post(f"/api/tournaments/{tid}/start")
    assert r.status_code == 400
    assert _bracket(client, tid)["rounds"] == []
    assert client.get(f"/api/tournaments/{tid}").json()["status"] == "DRAFT"


def test_readiness_endpoint(client: TestClient):
    tid = _create_tournament(client)
    body = client.get(f"/api/tournaments/{tid}/readiness").json()
    assert body["ready"] is True
    assert body["errors"] == []
    assert body["bracket_size"] == 8
    assert _bracket(client, tid)["rounds"] == []

    uneven = _create_tournament(client, sizes={"A": 2, "B": 2, "C": 2, "D": 1})
    body = client.get(f"/api/tournaments/{uneven}/readiness").json()
    assert body["ready"] is False
    assert body["bracket_size"] is None

    assert client.get("/api/tournaments/999/readiness").status_code == 404


def test_bracket_shape_after_start(client: TestClient):
    tid = _create_tournament(client)
    r = client.post(f"/api/tournaments/{tid}/start")
    assert r.status_code == 200
    assert r.json()["status"] == "ACTIVE"

    data = _bracket(client, tid)
    assert data["tournament"]["status"] == "ACTIVE"
    assert len(data["rounds"]) == 1
    first = data["rounds"][0]
    assert first["round_number"] == 1
    assert first["name"] == "Quarterfinal"
    assert first["status"] == "ACTIVE"
    assert first["total_matchups"] == 4
    assert first["completed_matchups"] == 0
    assert [m["position"] for m in first["matchups"]] == [1, 2, 3, 4]
    matchup = first["matchups"][0]
    assert matchup["vote_counts"] == {"contestant1_votes": 0, "contestant2_votes": 0, "total_votes": 0}
    assert matchup["is_tie"] is False

    # Contestants are locked once started
    r = client.post(f"/api/tournaments/{tid}/contestants", json={"name": "Late", "seed": 3, "quadrant": "A"})
    assert r.status_code == 409
    assert client.post(f"/api/tournaments/{tid}/start").status_code == 409


def test_voting_endpoints(client: TestClient):
    tid = _create_tournament(client)
    client.post(f"/api/tournaments/{tid}/start")
    matchup = _bracket(client, tid)["rounds"][0]["matchups"][0]
    mid = matchup["id"]

    r = client.post(f"/api/matchups/{mid}/votes", json={"voter_id": "u1", "contestant_id": matchup["contestant1_id"]})
    assert r.status_code == 201
    assert r.json()["vote_counts"]["contestant1_votes"] == 1

    r = client.post(f"/api/matchups/{mid}/votes", json={"voter_id": "u1", "contestant_id": matchup["contestant2_id"]})
    assert r.status_code == 409

    r = client.post(f"/api/matchups/{mid}/votes", json={"voter_id": "u2", "contestant_id": 99999})
    assert r.status_code == 422

    r = client.post(f"/api/matchups/{mid}/votes", json={"voter_id": TIE_BREAK_ACTOR_ID, "contestant_id": matchup["contestant1_id"]})
    assert r.status_code == 422

    vote = client.get(f"/api/matchups/{mid}/votes/u1").json()
    assert vote["has_voted"] is True
    assert vote["vote"]["contestant_id"] == matchup["contestant1_id"]
    assert vote["vote"]["kind"] == "REGULAR"
    assert client.get(f"/api/matchups/{mid}/votes/nobody").json()["has_voted"] is False

    status = client.get(f"/api/tournaments/{tid}/voting-status/u1").json()
    assert status["active_matchups"] == 4
    assert status["voted_matchups"] == 1
    assert status["remaining_matchups"] == 3
    assert status["voted_matchup_ids"] == [mid]
    assert status["completion_percentage"] == 25.0


def test_full_tournament_with_tie_break(client: TestClient):
    tid = _create_tournament(client)
    client.post(f"/api/tournaments/{tid}/start")
    first = _bracket(client, tid)["rounds"][0]["matchups"]

    # Position 1 ties 1-1, the rest go to contestant1 by one vote
    tied = first[0]
    client.post(f"/api/matchups/{tied['id']}/votes", json={"voter_id": "u1", "contestant_id": tied["contestant1_id"]})
    client.post(f"/api/matchups/{tied['id']}/votes", json={"voter_id": "u2", "contestant_id": tied["contestant2_id"]})
    for m in first[1:]:
        client.post(f"/api/matchups/{m['id']}/votes", json={"voter_id": "u1", "contestant_id": m["contestant1_id"]})

    r = client.post(f"/api/tournaments/{tid}/force-advance")
    assert r.status_code == 200
    assert r.json() == {
        "round_number": 1,
        "winners_declared": 3,
        "ties": 1,
        "tied_matchup_ids": [tied["id"]],
        "round_completed": False,
    }

    pending = client.get(f"/api/tournaments/{tid}/tie-breaks").json()
    assert [m["id"] for m in pending] == [tied["id"]]

    r = client.post(f"/api/matchups/{m['id']}/tie-break", json={"contestant_id": m["contestant1_id"], "requested_by": "admin"})
    assert r.status_code == 409

    r = client.post(
        f"/api/matchups/{tied['id']}/tie-break",
        json={"contestant_id": tied["contestant2_id"], "requested_by": "admin"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["winner_id"] == tied["contestant2_id"]
    assert body["is_tie"] is True
    assert body["status"] == "COMPLETED"
    assert client.get(f"/api/tournaments/{tid}/tie-breaks").json() == []

    data = _bracket(client, tid)
    assert [r["name"] for r in data["rounds"]] == ["Quarterfinal", "Semifinal"]
    semis = data["rounds"][1]["matchups"]
    assert (semis[0]["contestant1_id"], semis[0]["contestant2_id"]) == (tied["contestant2_id"], first[1]["contestant1_id"])
    assert (semis[1]["contestant1_id"], semis[1]["contestant2_id"]) == (first[2]["contestant1_id"], first[3]["contestant1_id"])

    for m in semis:
        client.post(f"/api/matchups/{m['id']}/votes", json={"voter_id": "u9", "contestant_id": m["contestant2_id"]})
        assert client.post(f"/api/matchups/{m['id']}/resolve").json()["winner_id"] == m["contestant2_id"]

    final = _bracket(client, tid)["rounds"][2]
    assert final["name"] == "Final"
    fm = final["matchups"][0]
    client.post(f"/api/matchups/{fm['id']}/votes", json={"voter_id": "u9", "contestant_id": fm["contestant1_id"]})
    client.post(f"/api/matchups/{fm['id']}/resolve")

    tournament = client.get(f"/api/tournaments/{tid}").json()
    assert tournament["status"] == "COMPLETED"
    assert tournament["champion_id"] == fm["contestant1_id"]

    stats = client.get(f"/api/tournaments/{tid}/stats").json()
    assert stats["status"] == "COMPLETED"
    assert stats["champion_id"] == fm["contestant1_id"]
    assert stats["total_matchups"] == 7
    assert stats["matchups_by_status"]["COMPLETED"] == 7
    assert stats["tie_count"] == 1
    assert stats["total_votes"] == 8
    assert stats["current_round"] is None

    assert client.post(f"/api/tournaments/{tid}/force-advance").status_code == 409
    assert client.post(f"/api/matchups/{fm['id']}/resolve").status_code == 409
