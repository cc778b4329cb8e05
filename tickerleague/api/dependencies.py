"""Shared FastAPI dependencies.

Identity is established upstream; requests carry the caller's participant id
in the ``X-Member-Id`` header. Tests override ``get_db``, ``get_clock`` and
``get_cache`` through ``app.dependency_overrides``.
"""

from collections.abc import Callable
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ..config.settings import settings
from ..core.cache import ReadCache, build_cache
from ..core.exceptions import AuthorizationError, LeagueError, NotFoundError, ValidationError
from ..core.time import utc_now
from ..database.connection import get_db
from ..database.repository import LeagueRepository


@lru_cache
def _shared_cache() -> ReadCache:
    return build_cache(settings)


def get_cache() -> ReadCache:
    return _shared_cache()


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_repository(db: Session = Depends(get_db)) -> LeagueRepository:
    return LeagueRepository(db, settings)


def get_member_id(x_member_id: str | None = Header(None)) -> str:
    if not x_member_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_member_id


def to_http_error(error: LeagueError) -> HTTPException:
    """Map domain errors onto HTTP status codes."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, AuthorizationError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
