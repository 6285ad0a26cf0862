from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.settings import Settings
from db.models import Base


def create_db_engine(settings: Settings) -> Engine:
    """Create a SQLAlchemy engine for the configured DATABASE_URL."""
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        # In-memory SQLite only survives on a single shared connection
        if ":memory:" in url:
            return create_engine(
                url, future=True, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(url, future=True, connect_args=connect_args)

    return create_engine(url, future=True, pool_pre_ping=True)


def init_db(engine: Engine) -> sessionmaker:
    """Create tables and return a session factory bound to the engine."""
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)
