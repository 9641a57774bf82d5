from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user, require_admin
from ..errors import ValidationError
from ..models.models import ConfigEntry
from ..services.events import notify


logger = structlog.get_logger()

router = APIRouter(prefix="/config", tags=["config"])


def _config_map(db: Session) -> Dict[str, Any]:
    return {row.key: row.value for row in db.query(ConfigEntry).order_by(ConfigEntry.key.asc()).all()}


@router.get("")
def get_config(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return _config_map(db)


@router.post("")
def update_config(values: Dict[str, Any] = Body(...), db: Session = Depends(get_db), _=Depends(require_admin)):
    """Merge the given keys into the stored config; keys not sent are left untouched."""
    if not values:
        raise ValidationError("No config keys provided")
    now = datetime.now(timezone.utc)
    for key, value in values.items():
        key = (key or "").strip()
        if not key:
            raise ValidationError("Config keys cannot be empty")
        row = db.get(ConfigEntry, key)
        if row is None:
            db.add(ConfigEntry(key=key, value=value, updated_at=now))
        else:
            row.value = value
            row.updated_at = now
    db.commit()
    logger.info("config_updated", keys=sorted(values.keys()))
    out = _config_map(db)
    notify("config", "config_updated", out)
    return out
