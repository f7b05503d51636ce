import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def _reload_app(monkeypatch: pytest.MonkeyPatch, *, db_path: Path, **env: str):
    """Re-import flashdeck.* so settings and the store pick up fresh env vars."""

    monkeypatch.setenv("FLASHCARDS_DB_PATH", str(db_path))
    for key, value in env.items():
        monkeypatch.setenv(key.upper(), value)

    for name in list(sys.modules.keys()):
        if name == "flashdeck" or name.startswith("flashdeck."):
            sys.modules.pop(name)

    importlib.import_module("flashdeck.config")
    importlib.import_module("flashdeck.store")
    return importlib.import_module("flashdeck.main")


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    db_path = tmp_path_factory.mktemp("flashdeck") / "store.sqlite3"
    flashdeck_main = _reload_app(monkeypatch, db_path=db_path)
    return TestClient(flashdeck_main.app)


def _create_deck_with_card(client: TestClient, user_id: str = "u1") -> tuple[str, str]:
    resp = client.post("/api/decks", json={"user_id": user_id, "name": " Spanish "})
    assert resp.status_code == 200
    deck = resp.json()["deck"]
    assert deck["name"] == "Spanish"
    resp = client.post(
        f"/api/decks/{deck['id']}/cards",
        json={"user_id": user_id, "question": "perro", "answer": "dog", "category": "nouns"},
    )
    assert resp.status_code == 200
    return deck["id"], resp.json()["card"]["id"]


def test_health(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"

    generated = client.get("/healthz").headers["X-Request-ID"]
    assert len(generated) == 32


def test_config_exposes_scheduler_policy(monkeypatch, tmp_path):
    flashdeck_main = _reload_app(
        monkeypatch,
        db_path=tmp_path / "cfg.sqlite3",
        srs_good_ease_rule="sm2",
        srs_easy_bonus="1.4",
    )
    client = TestClient(flashdeck_main.app)

    resp = client.get("/api/config")

    assert resp.status_code == 200
    scheduler = resp.json()["scheduler"]
    assert scheduler["good_ease_rule"] == "sm2"
    assert scheduler["easy_bonus"] == 1.4
    assert scheduler["lapse_penalties"] == {"0": 0.3, "1": 0.2, "2": 0.15}


def test_review_flow(client):
    deck_id, card_id = _create_deck_with_card(client)

    due = client.get("/api/review/due", params={"user_id": "u1"}).json()
    assert [item["id"] for item in due["items"]] == [card_id]

    resp = client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": card_id, "grade": 3},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["reviewed_count"] == 1
    assert body["card"]["repetitions"] == 1
    assert body["card"]["interval_days"] == 1
    assert body["card"]["review_count"] == 1
    assert body["card"]["grade_history"][0]["grade"] == 3

    due = client.get("/api/review/due", params={"user_id": "u1", "deck_id": deck_id}).json()
    assert due["items"] == []

    stats = client.get("/api/stats", params={"user_id": "u1"}).json()["stats"]
    assert stats["total_reviews"] == 1
    assert stats["grade_totals"] == {"bad": 0, "good": 1, "excellent": 0}

    metrics = client.get("/metrics").json()
    assert metrics["reviews"].get("good") == 1
    assert "/api/review" in metrics["paths"]


def test_lapse_review_requeues_within_minutes(client):
    deck_id, card_id = _create_deck_with_card(client)

    body = client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": card_id, "grade": "2"},
    ).json()

    assert body["card"]["repetitions"] == 0
    assert body["card"]["interval_days"] == 0
    assert body["card"]["ease_factor"] == pytest.approx(2.35)


@pytest.mark.parametrize("grade", ["abc", None, True, ""])
def test_invalid_grade_is_rejected_without_changes(client, grade):
    deck_id, card_id = _create_deck_with_card(client)

    resp = client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": card_id, "grade": grade},
    )

    assert resp.status_code == 400
    deck = client.get("/api/decks", params={"user_id": "u1"}).json()["decks"][0]
    assert deck["reviewed_count"] == 0
    assert deck["cards"][0]["review_count"] == 0
    assert deck["cards"][0]["version"] == 0


def test_review_unknown_card_is_404(client):
    deck_id, _ = _create_deck_with_card(client)

    resp = client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": "card_missing", "grade": 4},
    )

    assert resp.status_code == 404


def test_review_requires_identifiers(client):
    resp = client.post("/api/review", json={"user_id": "u1", "grade": 4})
    assert resp.status_code == 422


def test_decks_are_scoped_to_user(client):
    deck_id, card_id = _create_deck_with_card(client)

    assert client.get("/api/decks", params={"user_id": "u2"}).json() == {"decks": []}
    assert client.delete(f"/api/decks/{deck_id}", params={"user_id": "u2"}).status_code == 404
    resp = client.put(
        f"/api/decks/{deck_id}/cards/{card_id}", json={"user_id": "u2", "answer": "cat"}
    )
    assert resp.status_code == 404


def test_card_edit_and_delete(client):
    deck_id, card_id = _create_deck_with_card(client)

    resp = client.put(
        f"/api/decks/{deck_id}/cards/{card_id}",
        json={"user_id": "u1", "answer": "the dog", "tags": ["pets"]},
    )
    assert resp.status_code == 200
    card = resp.json()["card"]
    assert card["question"] == "perro"
    assert card["answer"] == "the dog"
    assert card["tags"] == ["pets"]

    resp = client.delete(f"/api/decks/{deck_id}/cards/{card_id}", params={"user_id": "u1"})
    assert resp.json() == {"ok": True, "deck": None}
    resp = client.delete(f"/api/decks/{deck_id}/cards/{card_id}", params={"user_id": "u1"})
    assert resp.status_code == 404


def test_delete_category(client):
    deck_id, _ = _create_deck_with_card(client)
    client.post(
        f"/api/decks/{deck_id}/cards",
        json={"user_id": "u1", "question": "correr", "answer": "to run", "category": "verbs"},
    )

    resp = client.delete(f"/api/decks/{deck_id}/categories/nouns", params={"user_id": "u1"})

    assert resp.status_code == 200
    cards = resp.json()["deck"]["cards"]
    assert [card["category"] for card in cards] == ["verbs"]


def test_export_and_import(client):
    deck_id, card_id = _create_deck_with_card(client)
    client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": card_id, "grade": 5},
    )

    exported = client.get(f"/api/decks/{deck_id}/export", params={"user_id": "u1"}).json()["deck"]
    assert exported["name"] == "Spanish"
    assert exported["cards"][card_id]["answer"] == "dog"
    assert "ease_factor" not in exported["cards"][card_id]

    resp = client.post("/api/import", json={"user_id": "u2", "data": exported})
    assert resp.status_code == 200
    imported = resp.json()["deck"]
    assert imported["user_id"] == "u2"
    assert imported["cards"][0]["repetitions"] == 0
    assert imported["cards"][0]["next_review_at"]


def test_stats_reset(client):
    deck_id, card_id = _create_deck_with_card(client)
    client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": card_id, "grade": 1},
    )

    resp = client.post("/api/stats/reset", json={"user_id": "u1"})

    assert resp.status_code == 200
    assert resp.json()["stats"]["total_reviews"] == 0
    deck = client.get("/api/decks", params={"user_id": "u1"}).json()["decks"][0]
    assert deck["reviewed_count"] == 0
    assert deck["cards"][0]["review_count"] == 1


def test_rate_limit_returns_429(monkeypatch, tmp_path):
    flashdeck_main = _reload_app(
        monkeypatch, db_path=tmp_path / "rl.sqlite3", rate_limit_per_min_ip="2"
    )
    client = TestClient(flashdeck_main.app)

    statuses = [client.get("/api/decks", params={"user_id": "u1"}).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]


def test_huge_integer_grade_is_clamped(client):
    deck_id, card_id = _create_deck_with_card(client)

    resp = client.post(
        "/api/review",
        json={"user_id": "u1", "deck_id": deck_id, "card_id": card_id, "grade": 10**400},
    )

    assert resp.status_code == 200
    card = resp.json()["card"]
    assert card["grade_history"][0]["grade"] == 5
    assert card["interval_days"] == 4


@pytest.mark.parametrize("name", ["", "   ", "\t\n"])
def test_blank_deck_name_is_rejected(client, name):
    resp = client.post("/api/decks", json={"user_id": "u1", "name": name})

    assert resp.status_code == 422
    assert client.get("/api/decks", params={"user_id": "u1"}).json() == {"decks": []}


def test_deck_name_is_trimmed_and_exportable(client):
    deck = client.post("/api/decks", json={"user_id": "u1", "name": "  Verbs  "}).json()["deck"]

    assert deck["name"] == "Verbs"
    resp = client.get(f"/api/decks/{deck['id']}/export", params={"user_id": "u1"})
    assert resp.status_code == 200
    assert resp.json()["deck"]["name"] == "Verbs"


def test_import_rejects_blank_deck_name(client):
    resp = client.post("/api/import", json={"user_id": "u1", "data": {"name": "  ", "cards": {}}})

    assert resp.status_code == 422
