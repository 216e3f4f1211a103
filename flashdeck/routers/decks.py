from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from flashdeck.core.config import Settings
from flashdeck.core.deps import get_capabilities, get_card_generator, get_settings_dep
from flashdeck.core.responses import result_response
from flashdeck.core.security import Identity, get_optional_identity
from flashdeck.db.database import get_db
from flashdeck.services import decks as deck_service
from flashdeck.services.card_generator import CardGenerator
from flashdeck.services.entitlements import CapabilityResolver

router = APIRouter(prefix="/decks", tags=["decks"])


# =========================================================
# Decks
# =========================================================
@router.get("")
def list_decks(
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.list_decks(db, identity))


@router.post("")
def create_deck(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    capabilities: CapabilityResolver = Depends(get_capabilities),
    settings: Settings = Depends(get_settings_dep),
):
    return result_response(
        deck_service.create_deck(
            db, identity, payload, capabilities, free_deck_limit=settings.FREE_DECK_LIMIT
        )
    )


@router.get("/{deck_id}")
def get_deck(
    deck_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.get_deck(db, identity, deck_id))


@router.patch("/{deck_id}")
def update_deck(
    deck_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.update_deck(db, identity, deck_id, payload))


@router.delete("/{deck_id}")
def delete_deck(
    deck_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.delete_deck(db, identity, deck_id))


# =========================================================
# Cards
# =========================================================
@router.get("/{deck_id}/cards")
def list_cards(
    deck_id: str,
    q: str | None = None,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.list_cards(db, identity, deck_id, q=q))


@router.post("/{deck_id}/cards")
def create_card(
    deck_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.create_card(db, identity, deck_id, payload))


@router.patch("/{deck_id}/cards/{card_id}")
def update_card(
    deck_id: str,
    card_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.update_card(db, identity, deck_id, card_id, payload))


@router.delete("/{deck_id}/cards/{card_id}")
def delete_card(
    deck_id: str,
    card_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.delete_card(db, identity, deck_id, card_id))


# =========================================================
# Study / AI
# =========================================================
@router.get("/{deck_id}/study")
def study_deck(
    deck_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(deck_service.load_study_deck(db, identity, deck_id))


@router.post("/{deck_id}/generate")
def generate_cards(
    deck_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    capabilities: CapabilityResolver = Depends(get_capabilities),
    generator: CardGenerator = Depends(get_card_generator),
    settings: Settings = Depends(get_settings_dep),
):
    return result_response(
        deck_service.generate_cards(
            db, identity, deck_id, capabilities, generator, count=settings.AI_CARDS_COUNT
        )
    )
