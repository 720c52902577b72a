"""
Engine, session factory and declarative base.

SQLite URLs get `check_same_thread=False` because store calls run on worker
threads (see services.tracker).
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from moodtracker.core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> Engine:
    connect_args = {}
    engine_kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if ":memory:" in url or url == "sqlite://":
            # One shared connection, otherwise every checkout sees an empty DB.
            engine_kwargs["poolclass"] = StaticPool
    return create_engine(url, connect_args=connect_args, **engine_kwargs)


def make_sessionmaker(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine) -> None:
    """Create the single fixed schema. No migrations."""
    import moodtracker.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=bind)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_sessionmaker(engine)
