from conftest import ADMIN_KEY, auth_headers, create_card, create_deck

from flashdeck.core.security import Identity
from flashdeck.db import database
from flashdeck.db.models import User
from flashdeck.services import users as user_service


def test_me_provisions_user_just_in_time(test_client, db):
    headers = auth_headers("user_new", email="new@example.com", first_name="Nina")
    assert db.query(User).count() == 0

    r = test_client.get("/users/me", headers=headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["user"]["external_id"] == "user_new"
    assert data["user"]["email"] == "new@example.com"
    assert data["plan"] == "free"
    assert data["deck_limit"] == 3
    assert data["has_unlimited_decks"] is False

    # deuxième appel: pas de doublon
    test_client.get("/users/me", headers=headers)
    assert db.query(User).count() == 1


def test_me_requires_identity(test_client):
    r = test_client.get("/users/me")
    assert r.status_code == 401
    assert r.json()["kind"] == "unauthenticated"


def test_me_pro_entitlements(test_client):
    r = test_client.get("/users/me", headers=auth_headers("user_pro", pla="u:pro"))
    data = r.json()["data"]
    assert data["plan"] == "pro"
    assert data["has_unlimited_decks"] is True
    assert data["deck_limit"] is None
    assert data["has_ai_generation"] is True


def test_dashboard_stats(test_client, alice):
    d1 = create_deck(test_client, alice, name="Full")
    create_deck(test_client, alice, name="Empty")
    create_card(test_client, alice, d1["id"])
    create_card(test_client, alice, d1["id"])

    for correct, total, acc in ((1, 2, 50), (2, 2, 100)):
        r = test_client.post(
            "/study-sessions",
            json={
                "deck_id": d1["id"],
                "correct_count": correct,
                "incorrect_count": total - correct,
                "total_cards": total,
                "accuracy_percentage": acc,
            },
            headers=alice,
        )
        assert r.status_code == 201, r.text

    r = test_client.get("/dashboard", headers=alice)
    assert r.status_code == 200, r.text
    data = r.json()["data"]

    assert data["deck_stats"] == {
        "total_decks": 2,
        "total_cards": 2,
        "decks_with_cards": 1,
        "empty_decks": 1,
        "average_cards_per_deck": 1.0,
        "completion_rate": 50,
    }
    assert data["session_stats"] == {
        "total_sessions": 2,
        "total_correct": 3,
        "total_incorrect": 1,
        "average_accuracy": 75,
    }
    assert len(data["recent_sessions"]) == 2
    assert {s["deck_name"] for s in data["recent_sessions"]} == {"Full"}
    assert data["deck_limit"] == 3


def test_dashboard_provisions_user(test_client, db):
    r = test_client.get("/dashboard", headers=auth_headers("user_first_visit"))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["decks"] == []
    assert data["session_stats"]["average_accuracy"] == 0
    assert db.query(User).filter_by(external_id="user_first_visit").count() == 1


# ── admin sync ────────────────────────────────────────────────

def _provider_user(user_id, email):
    emails = [{"id": "idn_1", "email_address": email}] if email else []
    return {
        "id": user_id,
        "email_addresses": emails,
        "primary_email_address_id": "idn_1" if email else None,
        "first_name": "Sam",
        "last_name": None,
    }


def test_admin_sync_users(test_client, alice, db):
    body = {
        "users": [
            _provider_user("user_alice", "alice@new.example.com"),
            _provider_user("user_carol", "carol@example.com"),
            _provider_user("user_noemail", None),
        ]
    }
    r = test_client.post("/admin/users/sync", json=body, headers={"x-api-key": ADMIN_KEY})
    assert r.status_code == 200, r.text
    assert r.json() == {"created": 1, "updated": 1, "skipped": 1}
    assert db.query(User).count() == 2


def test_admin_sync_requires_api_key(test_client):
    r = test_client.post("/admin/users/sync", json={"users": [_provider_user("u", "u@example.com")]})
    assert r.status_code == 401


# ── provisioning concurrent ───────────────────────────────────

def _commit_elsewhere(external_id, email):
    other = database.SessionLocal()
    try:
        user_service.upsert_user(other, external_id=external_id, email=email, first_name="Webhook")
    finally:
        other.close()


def _stale_lookups(monkeypatch, count=1):
    # les `count` premières lectures ne voient pas la ligne insérée par l'autre transaction
    real_find = user_service._find_user
    calls = []

    def find(db, external_id):
        calls.append(external_id)
        if len(calls) <= count:
            return None
        return real_find(db, external_id)

    monkeypatch.setattr(user_service, "_find_user", find)
    return calls


def test_upsert_after_concurrent_insert_updates(app, db, monkeypatch):
    _commit_elsewhere("user_race", "hook@example.com")
    calls = _stale_lookups(monkeypatch)

    user, created = user_service.upsert_user(
        db, external_id="user_race", email="jit@example.com", first_name="Jit"
    )
    assert created is False
    assert len(calls) == 2
    assert user.email == "jit@example.com"
    assert db.query(User).filter_by(external_id="user_race").count() == 1


def test_ensure_user_loses_race_to_webhook(app, db, monkeypatch):
    _commit_elsewhere("user_race", "hook@example.com")
    # ensure_user puis upsert_user lisent tous deux avant le commit du webhook
    calls = _stale_lookups(monkeypatch, count=2)

    user = user_service.ensure_user(db, Identity(external_id="user_race", email="jit@example.com"))
    assert user.external_id == "user_race"
    assert len(calls) == 3
    assert db.query(User).filter_by(external_id="user_race").count() == 1
