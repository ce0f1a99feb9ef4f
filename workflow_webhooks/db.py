"""Engine, session and schema helpers for the delivery log database."""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from workflow_webhooks.config import get_settings

Base = declarative_base()


@lru_cache()
def get_engine() -> Engine:
    """Return the process-wide engine for ``DATABASE_URL``."""

    url = make_url(get_settings().database_url)
    connect_args: Dict[str, Any] = {}
    if url.get_backend_name() == "sqlite":
        # Deliveries are recorded from whichever request thread received them.
        connect_args["check_same_thread"] = False
    return create_engine(url, future=True, echo=False, connect_args=connect_args)


@lru_cache()
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on error."""

    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_schema() -> None:
    """Create any missing tables for the registered models."""

    from workflow_webhooks import models  # noqa: F401  (register tables)

    Base.metadata.create_all(get_engine())
