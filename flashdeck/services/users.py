from __future__ import annotations

import logging
from typing import Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flashdeck.core.security import Identity
from flashdeck.db.models import User
from flashdeck.services.authorization import require_identity

logger = logging.getLogger(__name__)


def _find_user(db: Session, external_id: str) -> Optional[User]:
    return db.execute(
        select(User).where(User.external_id == external_id)
    ).scalar_one_or_none()


def _apply_profile(user: User, email: str, first_name: Optional[str], last_name: Optional[str]) -> None:
    user.email = email or ""
    user.first_name = first_name or None
    user.last_name = last_name or None


def upsert_user(
    db: Session,
    *,
    external_id: str,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Tuple[User, bool]:
    """
    Crée ou met à jour l'utilisateur lié à `external_id`.
    Idempotent: rejouer le même événement ne crée pas de doublon, et une
    insertion concurrente (webhook + première visite) se replie en mise à jour.
    Renvoie (user, created).
    """
    user = _find_user(db, external_id)

    created = user is None
    if created:
        user = User(external_id=external_id)
        db.add(user)
    _apply_profile(user, email, first_name, last_name)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if not created:
            raise
        # une autre transaction a inséré ce external_id entre-temps
        logger.info("User %s inserted concurrently, updating instead", external_id)
        user = _find_user(db, external_id)
        if user is None:
            raise
        created = False
        _apply_profile(user, email, first_name, last_name)
        db.commit()

    db.refresh(user)

    logger.info("User %s %s", external_id, "created" if created else "updated")
    return user, created


def delete_user(db: Session, external_id: str) -> bool:
    res = db.execute(delete(User).where(User.external_id == external_id))
    db.commit()
    deleted = (res.rowcount or 0) > 0
    logger.info("User %s delete requested (deleted=%s)", external_id, deleted)
    return deleted


def ensure_user(db: Session, identity: Optional[Identity]) -> User:
    """
    Provisioning "just-in-time": si l'utilisateur n'existe pas encore en base
    (webhook pas encore reçu), on le crée à partir des claims du token.
    """
    identity = require_identity(identity)
    user = _find_user(db, identity.external_id)
    if user is not None:
        return user

    user, _ = upsert_user(
        db,
        external_id=identity.external_id,
        email=identity.email or "",
        first_name=identity.first_name,
        last_name=identity.last_name,
    )
    return user
