from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from flashdeck.core.config import Settings
from flashdeck.core.deps import get_capabilities, get_settings_dep
from flashdeck.core.errors import FlashdeckError
from flashdeck.core.responses import result_response
from flashdeck.core.security import Identity, get_optional_identity
from flashdeck.db.database import get_db
from flashdeck.schemas.users import MeOut, UserOut
from flashdeck.services.entitlements import CapabilityResolver, compute_entitlements
from flashdeck.services.results import Result
from flashdeck.services.stats import dashboard
from flashdeck.services.users import ensure_user

router = APIRouter(tags=["users"])


def _provision(db: Session, identity: Optional[Identity]) -> Optional[Result]:
    # JIT: le webhook user.created peut arriver après la première visite
    try:
        ensure_user(db, identity)
    except FlashdeckError as e:
        return Result.fail(e)
    return None


@router.get("/users/me")
def me(
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    capabilities: CapabilityResolver = Depends(get_capabilities),
    settings: Settings = Depends(get_settings_dep),
):
    try:
        user = ensure_user(db, identity)
    except FlashdeckError as e:
        return result_response(Result.fail(e))

    entitlements = compute_entitlements(capabilities, identity, settings.FREE_DECK_LIMIT)
    return result_response(Result.ok(MeOut(user=UserOut.model_validate(user), **entitlements)))


@router.get("/dashboard")
def get_dashboard(
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    capabilities: CapabilityResolver = Depends(get_capabilities),
    settings: Settings = Depends(get_settings_dep),
):
    failed = _provision(db, identity)
    if failed is not None:
        return result_response(failed)

    return result_response(
        dashboard(
            db,
            identity,
            capabilities,
            free_deck_limit=settings.FREE_DECK_LIMIT,
            recent_limit=settings.RECENT_SESSIONS_LIMIT,
        )
    )
