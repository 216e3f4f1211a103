import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from flashdeck.core.security import get_api_key
from flashdeck.db.database import get_db
from flashdeck.schemas.users import UserSyncIn, UserSyncOut
from flashdeck.services.users import upsert_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/sync", response_model=UserSyncOut)
def sync_users(
    payload: UserSyncIn,
    db: Session = Depends(get_db),
    _api_key: str = Depends(get_api_key),
):
    """
    Rattrapage: recopie en base des utilisateurs du fournisseur d'identité
    (ceux créés avant la mise en place du webhook). Les utilisateurs sans
    email principal sont ignorés.
    """
    out = UserSyncOut()
    for provider_user in payload.users:
        email = provider_user.primary_email()
        if not email:
            logger.warning("Skipping user %s - no primary email", provider_user.id)
            out.skipped += 1
            continue

        _, created = upsert_user(
            db,
            external_id=provider_user.id,
            email=email,
            first_name=provider_user.first_name,
            last_name=provider_user.last_name,
        )
        if created:
            out.created += 1
        else:
            out.updated += 1

    logger.info("User sync done: %s", out.model_dump())
    return out
