from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from flashdeck.core.config import get_settings
from flashdeck.db.database import SessionLocal

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    s = get_settings()
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"
    finally:
        db.close()
    return {"status": "ok", "version": s.APP_VERSION, "database": database}


@router.get("/version")
def version():
    s = get_settings()
    return {"name": s.APP_NAME, "version": s.APP_VERSION, "env": s.APP_ENV}
