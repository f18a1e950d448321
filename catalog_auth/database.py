from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .config import Settings


def build_engine(settings: Settings) -> Engine:
    db_url = settings.DATABASE_URL
    engine_kwargs = {}

    if db_url.startswith("sqlite"):
        # Route handlers run in a threadpool
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False}
        })
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
        })

    return create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)


def create_db_and_tables(engine: Engine) -> None:
    # Import registers the tables on SQLModel.metadata
    from .db import models  # noqa: F401
    SQLModel.metadata.create_all(engine)
