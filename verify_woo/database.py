import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

LOGGER = logging.getLogger(__name__)


def _build_database_url() -> str:
    raw_url = os.getenv("DATABASE_URL", "sqlite:///./verify_woo.db")
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


DATABASE_URL = _build_database_url()
engine = create_engine(
    DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args(DATABASE_URL)
)
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
)
Base = declarative_base()


def init_db() -> None:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    from verify_woo.models import otp as _otp  # noqa: F401
    from verify_woo.models import session as _session  # noqa: F401
    from verify_woo.models import user as _user  # noqa: F401

    Base.metadata.create_all(bind=engine)
    LOGGER.info(
        "Verify Woo tables ready on %s", engine.url.render_as_string(hide_password=True)
    )


@contextmanager
def session_scope():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
