from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from flashdeck.core.errors import (
    NotFoundOrDeniedError,
    UnauthenticatedError,
    UserNotFoundError,
)
from flashdeck.core.security import Identity
from flashdeck.db.models import Card, Deck, User


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise UnauthenticatedError()
    return identity


def resolve_user(db: Session, identity: Optional[Identity]) -> User:
    """
    Identité -> utilisateur interne. Pas de provisioning ici: c'est le rôle
    de la couche présentation (voir services.users.ensure_user).
    """
    identity = require_identity(identity)
    user = db.execute(
        select(User).where(User.external_id == identity.external_id)
    ).scalar_one_or_none()
    if not user:
        raise UserNotFoundError()
    return user


def _owned_deck_query(user: User, deck_id: str):
    return select(Deck).where(Deck.id == str(deck_id), Deck.user_id == user.id)


def owns_deck(db: Session, user: Optional[User], deck_id: str) -> bool:
    """
    Prédicat unique d'autorisation (utilisateur, deck).
    """
    if user is None or not deck_id:
        return False
    return db.execute(_owned_deck_query(user, deck_id)).scalar_one_or_none() is not None


def get_owned_deck(db: Session, user: User, deck_id: str) -> Deck:
    # même réponse pour "n'existe pas" et "pas à toi"
    deck = db.execute(_owned_deck_query(user, deck_id)).scalar_one_or_none()
    if deck is None:
        raise NotFoundOrDeniedError("Deck not found or access denied")
    return deck


def get_deck_card(db: Session, deck: Deck, card_id: str) -> Card:
    """
    La carte doit appartenir au deck du chemin, indépendamment de la
    vérification de propriété du deck.
    """
    card = db.execute(
        select(Card).where(Card.id == str(card_id), Card.deck_id == deck.id)
    ).scalar_one_or_none()
    if card is None:
        raise NotFoundOrDeniedError("Card not found or access denied")
    return card
