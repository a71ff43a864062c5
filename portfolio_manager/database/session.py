from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from portfolio_manager.core.config import DATABASE_URL, SERVICE_ROLE_DATABASE_URL
from portfolio_manager.core.log import logger

engine = create_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Bypasses row-level policies. Only the portfolio managers may use it, and they
# re-check the caller's rights before every privileged write.
admin_engine = (
    engine
    if SERVICE_ROLE_DATABASE_URL == DATABASE_URL
    else create_engine(SERVICE_ROLE_DATABASE_URL)
)
AdminSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=admin_engine)


def _session_scope(factory):
    db = factory()

    try:
        yield db
        db.commit()
    except Exception as e:
        logger.error(f"Rolling back database transaction: {e}")
        db.rollback()
        raise e
    finally:
        db.close()


def get_db():
    yield from _session_scope(SessionLocal)


def get_admin_db():
    yield from _session_scope(AdminSessionLocal)


@contextmanager
def admin_db_session():
    """Context manager for privileged sessions in background tasks"""
    yield from _session_scope(AdminSessionLocal)
