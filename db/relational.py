"""
db/relational.py

Responsible for:
1) creating the connection to the local DB (SQLite by default)
2) creating Sessions (units of work for INSERT/SELECT)
3) creating the tables themselves (init_db)
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import get_settings


def make_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Build an engine for the given URL (defaults come from Settings).

    "sqlite://" (in-memory) gets a StaticPool so every Session sees the same
    database; otherwise each connection would open its own empty one.
    """
    settings = get_settings()
    url = database_url or settings.DATABASE_URL
    echo = settings.DB_ECHO if echo is None else echo

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        # Streamlit runs each browser session on its own thread
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(url, echo=echo)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """
    Create the tables in the DB.
    The tables are declared in db/models.py.
    """
    from db.models import Base  # local import to avoid circular imports
    Base.metadata.create_all(bind=engine)


