"""
Opérations CRUD sur les decks et les cartes, avec vérification de propriété.

Chaque opération suit le même ordre: validation de l'entrée, identité,
utilisateur interne, propriété du deck (et appartenance de la carte au deck
du chemin), puis écriture. Aucune écriture n'a lieu avant la fin des
vérifications.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from flashdeck.core.errors import LimitReachedError, ValidationError
from flashdeck.core.security import Identity
from flashdeck.db.models import Card, Deck
from flashdeck.schemas.flash import (
    CardIn,
    CardOut,
    DeckCreateIn,
    DeckOut,
    DeckSummaryOut,
    DeckUpdateIn,
    GenerateCardsOut,
    GeneratedCard,
    StudyDeckOut,
)
from flashdeck.services.authorization import (
    get_deck_card,
    get_owned_deck,
    require_identity,
    resolve_user,
)
from flashdeck.services.card_generator import CardGenerator
from flashdeck.services.entitlements import AI_GENERATION, UNLIMITED_DECKS, CapabilityResolver
from flashdeck.services.results import Result, parse_input, service_operation

logger = logging.getLogger(__name__)


def _card_counts(db: Session, deck_ids: List[str]) -> dict:
    if not deck_ids:
        return {}
    rows = db.execute(
        select(Card.deck_id, func.count(Card.id))
        .where(Card.deck_id.in_(deck_ids))
        .group_by(Card.deck_id)
    ).all()
    return {deck_id: int(c) for deck_id, c in rows}


# =========================================================
# Decks
# =========================================================
@service_operation("create deck")
def create_deck(
    db: Session,
    identity: Optional[Identity],
    payload: Any,
    capabilities: CapabilityResolver,
    free_deck_limit: int = 3,
) -> Result[DeckOut]:
    data = parse_input(DeckCreateIn, payload)
    identity = require_identity(identity)
    user = resolve_user(db, identity)

    if not capabilities.has(identity, UNLIMITED_DECKS):
        existing = db.execute(
            select(func.count(Deck.id)).where(Deck.user_id == user.id)
        ).scalar_one()
        if existing >= free_deck_limit:
            logger.info("Deck limit reached for user %s (%s decks)", user.id, existing)
            raise LimitReachedError()

    d = Deck(user_id=user.id, name=data.name, description=data.description)
    db.add(d)
    db.commit()
    db.refresh(d)

    return Result.ok(DeckOut.model_validate(d), status_code=201)


@service_operation("list decks")
def list_decks(db: Session, identity: Optional[Identity]) -> List[DeckSummaryOut]:
    user = resolve_user(db, identity)
    decks = db.execute(
        select(Deck).where(Deck.user_id == user.id).order_by(Deck.updated_at.desc(), Deck.id)
    ).scalars().all()

    counts = _card_counts(db, [d.id for d in decks])
    return [
        DeckSummaryOut.model_validate(d).model_copy(update={"cards_count": counts.get(d.id, 0)})
        for d in decks
    ]


@service_operation("load deck")
def get_deck(db: Session, identity: Optional[Identity], deck_id: str) -> DeckSummaryOut:
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)
    cnt = _card_counts(db, [d.id]).get(d.id, 0)
    return DeckSummaryOut.model_validate(d).model_copy(update={"cards_count": cnt})


@service_operation("update deck")
def update_deck(db: Session, identity: Optional[Identity], deck_id: str, payload: Any) -> DeckOut:
    data = parse_input(DeckUpdateIn, payload)
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)

    d.name = data.name
    d.description = data.description
    db.commit()
    db.refresh(d)
    return DeckOut.model_validate(d)


@service_operation("delete deck")
def delete_deck(db: Session, identity: Optional[Identity], deck_id: str) -> DeckOut:
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)
    out = DeckOut.model_validate(d)

    # cartes et sessions supprimées par la contrainte ON DELETE CASCADE
    db.execute(delete(Deck).where(Deck.id == d.id, Deck.user_id == user.id))
    db.commit()
    db.expunge_all()
    return out


# =========================================================
# Cards
# =========================================================
@service_operation("create card")
def create_card(db: Session, identity: Optional[Identity], deck_id: str, payload: Any) -> Result[CardOut]:
    data = parse_input(CardIn, payload)
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)

    c = Card(deck_id=d.id, front=data.front, back=data.back)
    db.add(c)
    db.commit()
    db.refresh(c)
    return Result.ok(CardOut.model_validate(c), status_code=201)


@service_operation("load cards")
def list_cards(
    db: Session,
    identity: Optional[Identity],
    deck_id: str,
    q: Optional[str] = None,
) -> List[CardOut]:
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)

    cards = db.execute(
        select(Card).where(Card.deck_id == d.id).order_by(Card.updated_at.desc(), Card.id)
    ).scalars().all()

    if q:
        qn = q.lower().strip()
        cards = [c for c in cards if qn in (c.front or "").lower() or qn in (c.back or "").lower()]

    return [CardOut.model_validate(c) for c in cards]


@service_operation("update card")
def update_card(
    db: Session,
    identity: Optional[Identity],
    deck_id: str,
    card_id: str,
    payload: Any,
) -> CardOut:
    data = parse_input(CardIn, payload)
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)
    c = get_deck_card(db, d, card_id)

    c.front = data.front
    c.back = data.back
    db.commit()
    db.refresh(c)
    return CardOut.model_validate(c)


@service_operation("delete card")
def delete_card(db: Session, identity: Optional[Identity], deck_id: str, card_id: str) -> CardOut:
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)
    c = get_deck_card(db, d, card_id)
    out = CardOut.model_validate(c)

    db.delete(c)
    db.commit()
    return out


# =========================================================
# Study & AI generation
# =========================================================
@service_operation("load study deck")
def load_study_deck(db: Session, identity: Optional[Identity], deck_id: str) -> StudyDeckOut:
    """
    Deck + cartes dans l'ordre de création, pour alimenter le moteur d'étude.
    """
    user = resolve_user(db, identity)
    d = get_owned_deck(db, user, deck_id)
    cards = db.execute(
        select(Card).where(Card.deck_id == d.id).order_by(Card.created_at, Card.id)
    ).scalars().all()
    return StudyDeckOut(
        deck=DeckOut.model_validate(d),
        cards=[CardOut.model_validate(c) for c in cards],
    )


@service_operation("generate cards")
def generate_cards(
    db: Session,
    identity: Optional[Identity],
    deck_id: str,
    capabilities: CapabilityResolver,
    generator: CardGenerator,
    count: int = 20,
) -> Result[GenerateCardsOut]:
    identity = require_identity(identity)
    user = resolve_user(db, identity)

    if not capabilities.has(identity, AI_GENERATION):
        raise LimitReachedError("AI generation is a Pro feature. Upgrade to generate cards.")

    d = get_owned_deck(db, user, deck_id)
    if not (d.description or "").strip():
        raise ValidationError(
            details=[{"field": "description", "message": "Add a description to the deck before generating cards"}],
            message="Please add a description to your deck first",
            requires_description=True,
        )

    raw = generator.generate(d.name, d.description, count)
    if not raw:
        raise ValidationError(message="AI returned no cards")
    generated = [parse_input(GeneratedCard, item) for item in raw]

    cards = [Card(deck_id=d.id, front=g.front, back=g.back) for g in generated]
    db.add_all(cards)
    db.commit()
    for c in cards:
        db.refresh(c)

    logger.info("Generated %s cards for deck %s", len(cards), d.id)
    return Result.ok(
        GenerateCardsOut(count=len(cards), cards=[CardOut.model_validate(c) for c in cards]),
        status_code=201,
    )
