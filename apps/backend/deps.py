"""FastAPI dependencies."""
from functools import lru_cache
from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from apps.backend.database import get_session_factory


@lru_cache
def _session_factory() -> sessionmaker:
    return get_session_factory()


def get_db() -> Generator[Session, None, None]:
    sess = _session_factory()()
    try:
        yield sess
    finally:
        sess.close()
