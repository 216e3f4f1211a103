from conftest import auth_headers, create_deck

from flashdeck.core.deps import get_card_generator
from flashdeck.db.models import Card


def _pro(test_client):
    headers = auth_headers("user_ai", fea="u:ai_flashcard_generation")
    test_client.get("/users/me", headers=headers)
    return headers


def test_generate_cards(test_client, fake_generator, db):
    headers = _pro(test_client)
    deck = create_deck(test_client, headers, name="Python", description="Core language features")

    r = test_client.post(f"/decks/{deck['id']}/generate", headers=headers)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["count"] == 2
    assert fake_generator.calls == [("Python", "Core language features", 5)]
    assert db.query(Card).filter_by(deck_id=deck["id"]).count() == 2


def test_generate_requires_capability(test_client, alice, fake_generator):
    deck = create_deck(test_client, alice, description="Something")
    r = test_client.post(f"/decks/{deck['id']}/generate", headers=alice)
    assert r.status_code == 403
    assert r.json()["kind"] == "limit_reached"
    assert fake_generator.calls == []


def test_generate_requires_description(test_client, fake_generator):
    headers = _pro(test_client)
    deck = create_deck(test_client, headers, description="")
    r = test_client.post(f"/decks/{deck['id']}/generate", headers=headers)
    assert r.status_code == 422
    body = r.json()
    assert body["requires_description"] is True
    assert fake_generator.calls == []


def test_generate_rejects_empty_result(test_client, fake_generator, db):
    fake_generator.cards = []
    headers = _pro(test_client)
    deck = create_deck(test_client, headers)
    r = test_client.post(f"/decks/{deck['id']}/generate", headers=headers)
    assert r.status_code == 422
    assert db.query(Card).count() == 0


def test_generate_rejects_invalid_pairs(test_client, fake_generator, db):
    fake_generator.cards = [{"front": "ok", "back": "ok"}, {"front": "", "back": "missing front"}]
    headers = _pro(test_client)
    deck = create_deck(test_client, headers)
    r = test_client.post(f"/decks/{deck['id']}/generate", headers=headers)
    assert r.status_code == 422
    assert db.query(Card).count() == 0


def test_generate_on_foreign_deck(test_client, alice, fake_generator):
    deck = create_deck(test_client, alice)
    r = test_client.post(f"/decks/{deck['id']}/generate", headers=_pro(test_client))
    assert r.status_code == 404
    assert fake_generator.calls == []


def test_generate_without_provider_configured(app, test_client, db):
    # pas d'OPENAI_API_KEY: le vrai générateur répond indisponible
    app.dependency_overrides.pop(get_card_generator)
    headers = _pro(test_client)
    deck = create_deck(test_client, headers)
    r = test_client.post(f"/decks/{deck['id']}/generate", headers=headers)
    assert r.status_code == 500
    body = r.json()
    assert body["kind"] == "operation_failed"
    assert body["error"] == "AI generation is not configured"
    assert db.query(Card).count() == 0
