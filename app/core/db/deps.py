from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.core.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function that provides a database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work that runs outside a request (queue scheduler, scripts)."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
