from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from astate.core.config import settings

# SQLAlchemy Base class for models to inherit
Base = declarative_base()


def make_engine(database_url: str):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(
        database_url,
        pool_pre_ping=True,   # helps avoid stale connections
    )


engine = make_engine(settings.database_url)

# Session factory shared by SqlRecordStore instances
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
