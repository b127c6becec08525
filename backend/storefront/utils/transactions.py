import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

log = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Run a unit of work as one transaction on the given Session.
    Commits when the block exits cleanly, rolls back and re-raises otherwise.
    Usage:
        with atomic(db):
            ... DB work ...
    """
    try:
        yield session
        session.commit()
    except Exception:
        log.debug("rolling back transaction")
        session.rollback()
        raise
