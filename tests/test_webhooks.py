import base64
import json

from conftest import WEBHOOK_SECRET, auth_headers, create_deck, signed_webhook

from flashdeck.db.models import Deck, User


def _user_event(event_type, user_id="user_hook", email="hook@example.com", first="Ada", last="Lovelace"):
    return {
        "type": event_type,
        "data": {
            "id": user_id,
            "email_addresses": [
                {"id": "idn_secondary", "email_address": "other@example.com"},
                {"id": "idn_primary", "email_address": email},
            ],
            "primary_email_address_id": "idn_primary",
            "first_name": first,
            "last_name": last,
        },
    }


def _post(client, event):
    body, headers = signed_webhook(event)
    return client.post("/webhooks/clerk", content=body, headers=headers)


def test_user_created(test_client, db):
    r = _post(test_client, _user_event("user.created"))
    assert r.status_code == 201, r.text

    user = db.query(User).filter_by(external_id="user_hook").one()
    assert user.email == "hook@example.com"
    assert user.first_name == "Ada"


def test_created_is_idempotent_and_updated_upserts(test_client, db):
    assert _post(test_client, _user_event("user.created")).status_code == 201
    assert _post(test_client, _user_event("user.created")).status_code == 200

    r = _post(test_client, _user_event("user.updated", email="new@example.com", last=None))
    assert r.status_code == 200
    db.expire_all()
    users = db.query(User).filter_by(external_id="user_hook").all()
    assert len(users) == 1
    assert users[0].email == "new@example.com"
    assert users[0].last_name is None

    # update d'un utilisateur inconnu: création
    r = _post(test_client, _user_event("user.updated", user_id="user_late"))
    assert r.status_code == 201


def test_jit_and_webhook_share_the_same_row(test_client, db):
    headers = auth_headers("user_hook")
    assert test_client.get("/users/me", headers=headers).status_code == 200
    assert _post(test_client, _user_event("user.created")).status_code == 200
    assert db.query(User).filter_by(external_id="user_hook").count() == 1


def test_user_deleted_cascades(test_client, db):
    headers = auth_headers("user_hook")
    test_client.get("/users/me", headers=headers)
    create_deck(test_client, headers)

    r = _post(test_client, {"type": "user.deleted", "data": {"id": "user_hook", "deleted": True}})
    assert r.status_code == 200
    assert db.query(User).filter_by(external_id="user_hook").count() == 0
    assert db.query(Deck).count() == 0


def test_missing_primary_email(test_client, db):
    event = _user_event("user.created")
    event["data"]["primary_email_address_id"] = "idn_unknown"
    r = _post(test_client, event)
    assert r.status_code == 400
    assert db.query(User).count() == 0


def test_unknown_event_acknowledged(test_client):
    r = _post(test_client, {"type": "session.created", "data": {"id": "sess_1"}})
    assert r.status_code == 200


def test_tampered_signature_rejected(test_client, db):
    body, headers = signed_webhook(_user_event("user.created"))
    tampered = json.loads(body)
    tampered["data"]["email_addresses"][1]["email_address"] = "attacker@example.com"

    r = test_client.post("/webhooks/clerk", content=json.dumps(tampered), headers=headers)
    assert r.status_code == 400
    assert db.query(User).count() == 0


def test_wrong_secret_rejected(test_client, db):
    other_secret = "whsec_" + base64.b64encode(b"other-secret-for-tests-000000000").decode()
    assert other_secret != WEBHOOK_SECRET
    body, headers = signed_webhook(_user_event("user.created"), secret=other_secret)
    r = test_client.post("/webhooks/clerk", content=body, headers=headers)
    assert r.status_code == 400
    assert db.query(User).count() == 0


def test_missing_headers_rejected(test_client, db):
    body, headers = signed_webhook(_user_event("user.created"))
    del headers["svix-signature"]
    r = test_client.post("/webhooks/clerk", content=body, headers=headers)
    assert r.status_code == 400
    assert db.query(User).count() == 0
