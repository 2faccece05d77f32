import logging
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from cemse_backend.settings import settings

logger = logging.getLogger(__name__)

def _database_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # in-memory sqlite must share one connection across threads
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 5,
        "pool_timeout": 30,
        "pool_recycle": 300
    }

_engine = create_engine(settings.database_url, **_database_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

def get_engine():
    return _engine

def init_db():
    from cemse_backend.model import Base
    Base.metadata.create_all(bind=_engine)

def get_db() -> Generator[Session, None, None]:

    db = SessionLocal()

    try:
        yield db
    except OperationalError:
        logger.error("Database connection failed")
        db.rollback()
        raise
    finally:
        db.close()
