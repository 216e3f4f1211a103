from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    pass


engine: Optional[Engine] = None
SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite n'applique ON DELETE CASCADE qu'avec ce pragma
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(database_url: str) -> Engine:
    """
    Crée l'engine, lie SessionLocal et crée les tables manquantes.
    """
    global engine

    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    new_engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    if new_engine.dialect.name == "sqlite":
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)

    # charge les modèles avant create_all
    from flashdeck.db import models  # noqa: F401

    Base.metadata.create_all(bind=new_engine)

    if engine is not None:
        engine.dispose()
    engine = new_engine
    SessionLocal.configure(bind=new_engine)
    return new_engine


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
