"""
Enregistrement du résultat d'une session d'étude terminée.

Ordre des vérifications: validation (tous les champs en une fois), identité,
propriété du deck. Les échecs attendus reviennent sous forme de Result;
seule une erreur de persistance inattendue lève PersistenceError.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flashdeck.core.errors import (
    FlashdeckError,
    OwnershipError,
    PersistenceError,
    ValidationError,
)
from flashdeck.core.security import Identity
from flashdeck.db.models import StudySession
from flashdeck.schemas.flash import StudySessionIn, StudySessionOut
from flashdeck.services.authorization import owns_deck, require_identity, resolve_user
from flashdeck.services.results import Result, parse_input
from flashdeck.services.scoring import accuracy_percentage

logger = logging.getLogger(__name__)


def _consistency_errors(data: StudySessionIn) -> List[Dict[str, Any]]:
    errors = []
    if data.correct_count + data.incorrect_count > data.total_cards:
        errors.append({
            "field": "total_cards",
            "message": "correct_count + incorrect_count cannot exceed total_cards",
        })
    expected = accuracy_percentage(data.correct_count, data.total_cards)
    if data.accuracy_percentage != expected:
        errors.append({
            "field": "accuracy_percentage",
            "message": f"accuracy_percentage must be {expected} for these counts",
        })
    return errors


def _validate(payload: Any) -> StudySessionIn:
    data = parse_input(StudySessionIn, payload)
    errors = _consistency_errors(data)
    if errors:
        raise ValidationError(details=errors)
    return data


def record_study_session(db: Session, identity: Optional[Identity], payload: Any) -> Result[StudySessionOut]:
    try:
        data = _validate(payload)
        identity = require_identity(identity)
        deck_id = str(data.deck_id)
        try:
            user = resolve_user(db, identity)
            owned = owns_deck(db, user, deck_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to check deck %s before saving study session", deck_id)
            raise PersistenceError() from e
        if not owned:
            raise OwnershipError()
    except PersistenceError:
        raise
    except FlashdeckError as e:
        return Result.fail(e)

    row = StudySession(
        user_id=user.id,
        deck_id=deck_id,
        correct_count=data.correct_count,
        incorrect_count=data.incorrect_count,
        total_cards=data.total_cards,
        accuracy_percentage=data.accuracy_percentage,
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to save study session for deck %s", deck_id)
        raise PersistenceError() from e

    logger.info(
        "Study session saved: deck=%s %s/%s (%s%%)",
        deck_id, data.correct_count, data.total_cards, data.accuracy_percentage,
    )
    return Result.ok(StudySessionOut.model_validate(row), status_code=201)


def recorder_callback(db: Session, identity: Optional[Identity], deck_id: str) -> Callable:
    """
    Adapte le recorder en callback `on_complete(tally)` pour le moteur d'étude.
    """

    def on_complete(tally) -> Result[StudySessionOut]:
        payload = dict(tally.as_dict(), deck_id=deck_id)
        return record_study_session(db, identity, payload)

    return on_complete
