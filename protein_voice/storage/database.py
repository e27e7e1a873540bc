"""Database helpers for the protein log."""

from __future__ import annotations

from functools import lru_cache
from typing import Generator

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..config import get_settings

Base = declarative_base()

tracer = trace.get_tracer(__name__)


def build_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, echo=False, future=True, connect_args=connect_args)


@lru_cache
def get_engine() -> Engine:
    engine = build_engine(get_settings().database_url)
    Base.metadata.create_all(bind=engine)
    return engine


@lru_cache
def get_sessionmaker() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)


def get_db() -> Generator[Session, None, None]:
    """Provide a transactional database session."""

    engine = get_engine()
    with tracer.start_as_current_span("database.session") as span:
        span.set_attribute("db.system", engine.url.get_backend_name())
        if engine.url.database:
            span.set_attribute("db.name", engine.url.database)
        db = get_sessionmaker()()
        try:
            yield db
            span.set_status(Status(StatusCode.OK))
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise
        finally:
            db.close()


__all__ = ["Base", "build_engine", "get_db", "get_engine", "get_sessionmaker"]
