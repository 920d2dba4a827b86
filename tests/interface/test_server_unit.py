from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from cadence.consts import VERSION
from cadence.server import app, get_service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def deck(store):
    return store.add_deck(owner_id=1, name="Spanish")


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_due_returns_only_due_cards(client, store, deck):
    store.add_card(deck, "Due Card", "Answer")
    store.add_card(deck, "Future Card", "Answer", due_at=datetime.now(timezone.utc) + timedelta(days=2))

    response = client.get("/review/due", params={"owner_id": 1})

    assert response.status_code == 200
    cards = response.json()["cards"]
    assert [c["front"] for c in cards] == ["Due Card"]
    assert cards[0]["deck_name"] == "Spanish"


def test_due_filters_by_deck(client, store, deck):
    second = store.add_deck(owner_id=1, name="Second Deck")
    store.add_card(deck, "Deck 1 Card", "Answer")
    store.add_card(second, "Deck 2 Card", "Answer")

    response = client.get("/review/due", params={"owner_id": 1, "deck_id": deck})

    cards = response.json()["cards"]
    assert [c["front"] for c in cards] == ["Deck 1 Card"]


def test_due_empty(client, deck):
    response = client.get("/review/due", params={"owner_id": 1})
    assert response.status_code == 200
    assert response.json() == {"cards": []}


def test_submit_review(client, store, deck):
    cid = store.add_card(deck, "hola", "hello")

    response = client.post("/review/submit", json={"owner_id": 1, "card_id": cid, "quality": 4})

    assert response.status_code == 200
    card = response.json()["card"]
    assert card["repetitions"] == 1
    assert card["interval"] == 1

    response = client.get(f"/review/history/{cid}", params={"owner_id": 1})
    assert response.status_code == 200
    history = response.json()["history"]
    assert len(history) == 1
    assert history[0]["quality"] == 4


@pytest.mark.parametrize("quality", [-1, 6])
def test_submit_rejects_out_of_range_quality(client, store, deck, quality):
    cid = store.add_card(deck, "hola", "hello")

    response = client.post(
        "/review/submit", json={"owner_id": 1, "card_id": cid, "quality": quality}
    )

    assert response.status_code == 422


def test_submit_unknown_or_foreign_card(client, store, deck):
    cid = store.add_card(deck, "hola", "hello")

    response = client.post("/review/submit", json={"owner_id": 2, "card_id": cid, "quality": 3})
    assert response.status_code == 404

    response = client.post("/review/submit", json={"owner_id": 1, "card_id": 999, "quality": 3})
    assert response.status_code == 404


def test_history_not_found(client, deck):
    response = client.get("/review/history/999", params={"owner_id": 1})
    assert response.status_code == 404


def test_stats(client, store, deck):
    store.add_card(deck, "a", "a")
    store.add_card(deck, "b", "b", due_at=datetime.now(timezone.utc) + timedelta(days=1))

    response = client.get("/review/stats", params={"owner_id": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["total_cards"] == 2
    assert data["due_now"] == 1
    assert data["new_cards"] == 2
    assert data["review_cards"] == 0
    assert len(data["upcoming"]) == 7
    assert data["upcoming"][0]["count"] == 1
