from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from flashdeck.core.errors import PersistenceError
from flashdeck.core.responses import result_response
from flashdeck.core.security import Identity, get_optional_identity
from flashdeck.db.database import get_db
from flashdeck.services.recorder import record_study_session
from flashdeck.services.results import Result
from flashdeck.services.stats import list_study_sessions

router = APIRouter(prefix="/study-sessions", tags=["study"])


@router.post("")
def save_study_session(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    try:
        result = record_study_session(db, identity, payload)
    except PersistenceError as e:
        result = Result.fail(e)
    return result_response(result)


@router.get("")
def study_history(
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return result_response(list_study_sessions(db, identity, limit=limit))
