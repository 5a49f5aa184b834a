from __future__ import annotations

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from client_crud.core.config import settings

logger = logging.getLogger(__name__)


# --- Base déclarative ---
class Base(DeclarativeBase):
    """Base pour tous les modèles SQLAlchemy."""


def _connect_args(url: str) -> dict:
    # SQLite: les routes sync tournent dans le threadpool de FastAPI
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# --- Engine SQLAlchemy ---
engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    pool_pre_ping=True,
    echo=getattr(settings, "DB_ECHO", False),
    connect_args=_connect_args(settings.DATABASE_URL),
)

# --- Session factory ---
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def init_db() -> None:
    """
    Enregistre le modèle Client et crée les tables manquantes.
    Le module du modèle doit être importé avant Base.metadata.create_all().
    """
    from client_crud.models import client  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("DB init: tables ensured")


# --- Dépendance FastAPI pour obtenir une session ---
def get_db():
    db = SessionLocal()
    logger.debug("db session opened")
    try:
        yield db
    except Exception:
        try:
            db.rollback()
            logger.exception("db session rolled back due to exception")
        except Exception:
            logger.exception("db rollback failed")
        raise
    finally:
        try:
            db.close()
            logger.debug("db session closed")
        except Exception:
            logger.exception("db session close failed")
