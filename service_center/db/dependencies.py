"""Request-scoped session provider for route handlers."""

from collections.abc import Iterator

from sqlalchemy.orm import Session

from service_center.db.session import SessionLocal


def get_db_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    except Exception:
        # Uncommitted upload rows must not leak into the next request on this connection.
        session.rollback()
        raise
    finally:
        session.close()
