import base64
import json
import uuid
from datetime import datetime, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from svix.webhooks import Webhook

from flashdeck.core.config import get_settings
from flashdeck.core.deps import get_card_generator
from flashdeck.db import database
from flashdeck.main import create_app

JWT_SECRET = "flashdeck-test-jwt-secret-0123456789abcdef"
WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"flashdeck-test-webhook-secret-01").decode()
ADMIN_KEY = "test-admin-key"


class FakeCardGenerator:
    """
    Générateur IA factice: renvoie `cards` et mémorise les appels.
    """

    def __init__(self, cards=None):
        self.cards = cards if cards is not None else [
            {"front": "What is a closure?", "back": "A function bundled with its lexical scope."},
            {"front": "What does GIL stand for?", "back": "Global Interpreter Lock."},
        ]
        self.calls = []

    def generate(self, name, description, count):
        self.calls.append((name, description, count))
        return list(self.cards)


@pytest.fixture()
def test_settings(tmp_path, monkeypatch):
    """
    Variables d'env isolées: base SQLite temporaire, secrets de test.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "flashdeck API (tests)")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")
    monkeypatch.setenv("AUTH_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("AUTH_JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("CLERK_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setenv("ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.setenv("FREE_DECK_LIMIT", "3")
    monkeypatch.setenv("AI_CARDS_COUNT", "5")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    # IMPORTANT: vider le cache des settings pour prendre en compte les env
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture()
def fake_generator():
    return FakeCardGenerator()


@pytest.fixture()
def app(test_settings, fake_generator):
    app = create_app()
    app.dependency_overrides[get_card_generator] = lambda: fake_generator
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def test_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def db(app):
    session = database.SessionLocal()
    yield session
    session.close()


def make_token(sub, **claims):
    payload = {
        "sub": sub,
        "email": f"{sub}@example.com",
        "first_name": sub.capitalize(),
    }
    payload.update(claims)
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def auth_headers(sub, **claims):
    return {"Authorization": f"Bearer {make_token(sub, **claims)}"}


@pytest.fixture()
def alice(test_client):
    """
    Utilisateur provisionné (JIT via /users/me), plan free.
    """
    headers = auth_headers("user_alice")
    r = test_client.get("/users/me", headers=headers)
    assert r.status_code == 200, r.text
    return headers


@pytest.fixture()
def bob(test_client):
    headers = auth_headers("user_bob")
    r = test_client.get("/users/me", headers=headers)
    assert r.status_code == 200, r.text
    return headers


def create_deck(client, headers, name="Python", description="Python basics"):
    r = client.post("/decks", json={"name": name, "description": description}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def create_card(client, headers, deck_id, front="Q?", back="A."):
    r = client.post(f"/decks/{deck_id}/cards", json={"front": front, "back": back}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def signed_webhook(event, secret=WEBHOOK_SECRET):
    """
    Corps + en-têtes svix signés, comme envoyés par le fournisseur d'identité.
    """
    body = json.dumps(event)
    msg_id = f"msg_{uuid.uuid4().hex}"
    now = datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, now, body)
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(int(now.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }
    return body, headers
