# proposal_app/db.py
from __future__ import annotations

import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

# Local dev convenience: loads from .env if present.
load_dotenv()

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


class Base(DeclarativeBase):
    pass


def database_enabled() -> bool:
    """Archiving is optional; without DATABASE_URL the PDF service runs stateless."""
    return bool(os.getenv("DATABASE_URL"))


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = os.getenv("DATABASE_URL")
        if not url:
            raise RuntimeError("DATABASE_URL is not set. Local: put it in .env.")
        _engine = create_engine(url, pool_pre_ping=True)
    return _engine


def SessionLocal() -> Session:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _session_factory()


def init_db(engine: Engine | None = None) -> None:
    # registers the mapped classes on Base.metadata
    from proposal_app import models  # noqa: F401

    Base.metadata.create_all(engine or get_engine())
