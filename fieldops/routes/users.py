from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_admin
from ..schemas.auth import RoleUpdate, ScheduleUpdate
from ..services import accounts
from ..services.events import notify


router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(db: Session = Depends(get_db), _=Depends(require_admin)):
    return [accounts.user_to_dict(u) for u in accounts.list_users(db)]


@router.put("/{user_id}/role")
def update_role(user_id: str, payload: RoleUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    out = accounts.user_to_dict(accounts.assign_role(db, user_id, payload.role))
    notify("users", "user_updated", out)
    return out


@router.put("/{user_id}/schedule")
def update_schedule(user_id: str, payload: ScheduleUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    windows = [w.model_dump() for w in payload.custom_schedule] if payload.custom_schedule is not None else None
    out = accounts.user_to_dict(accounts.assign_schedule(db, user_id, windows))
    notify("users", "user_updated", out)
    return out
