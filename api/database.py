"""Session helpers for the user-preference database."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from aggregation.settings import Settings, get_settings

from . import db_models

_ENGINE: Engine | None = None
_SESSIONMAKER: sessionmaker[Session] | None = None
_CURRENT_URL: str | None = None


def _make_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        database_url,
        future=True,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
    )


def get_engine(settings: Settings | None = None) -> Engine:
    """Return a memoized engine, rebuilt when DATABASE_URL changes."""
    global _ENGINE, _SESSIONMAKER, _CURRENT_URL

    config = settings or get_settings()
    if _ENGINE is None or _CURRENT_URL != config.database_url:
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = _make_engine(config.database_url)
        _SESSIONMAKER = sessionmaker(
            bind=_ENGINE, autocommit=False, autoflush=False, expire_on_commit=False, future=True
        )
        _CURRENT_URL = config.database_url
    return _ENGINE


def init_db(settings: Settings | None = None) -> None:
    db_models.Base.metadata.create_all(bind=get_engine(settings))


@contextmanager
def get_session(settings: Settings | None = None) -> Generator[Session, None, None]:
    get_engine(settings)
    assert _SESSIONMAKER is not None  # for mypy
    session = _SESSIONMAKER()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def session_dependency(request: Request) -> Generator[Session, None, None]:
    with get_session(request.app.state.settings) as session:
        yield session
