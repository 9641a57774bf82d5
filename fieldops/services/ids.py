"""
Identifier parsing shared by every lookup path.

References between entities (site -> company, ticket -> site/company) are soft:
they are stored as plain UUID columns without foreign keys, so a lookup must
tolerate malformed or dangling ids.
"""
import uuid
from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..errors import NotFound


T = TypeVar("T")


def parse_id(value) -> Optional[uuid.UUID]:
    """Return the UUID for ``value`` or None when it is empty or malformed."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except (ValueError, AttributeError, TypeError):
        return None


def find_by_id(db: Session, model: Type[T], value) -> Optional[T]:
    ident = parse_id(value)
    if ident is None:
        return None
    return db.get(model, ident)


def get_or_404(db: Session, model: Type[T], value, label: Optional[str] = None) -> T:
    row = find_by_id(db, model, value)
    if row is None:
        raise NotFound(f"{label or model.__name__} not found")
    return row
