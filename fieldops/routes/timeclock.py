from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user, require_admin, is_admin
from ..models.models import User
from ..schemas.timeclock import TimeclockSettingsUpdate, CheckInCreate
from ..services import timeclock
from ..services.events import notify


router = APIRouter(tags=["timeclock"])


@router.get("/settings/timeclock")
def get_timeclock_settings(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return timeclock.settings_to_dict(timeclock.get_settings(db))


@router.put("/settings/timeclock")
def update_timeclock_settings(payload: TimeclockSettingsUpdate, db: Session = Depends(get_db), _=Depends(require_admin)):
    row = timeclock.update_settings(
        db,
        schedule=[w.model_dump() for w in payload.schedule] if payload.schedule is not None else None,
        tolerance_minutes=payload.tolerance_minutes,
        geofence=payload.geofence.model_dump() if payload.geofence else None,
        clear_geofence=payload.clear_geofence,
    )
    out = timeclock.settings_to_dict(row)
    notify("timeclock", "settings_updated", out)
    return out


@router.post("/checkin", status_code=status.HTTP_201_CREATED)
def create_checkin(payload: CheckInCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    row = timeclock.record_checkin(
        db,
        user,
        direction=payload.direction,
        service=payload.service,
        gps=payload.gps.model_dump() if payload.gps else None,
        photo=payload.photo,
    )
    out = timeclock.checkin_to_dict(row)
    notify("checkins", "checkin_created", {k: v for k, v in out.items() if k != "photo"})
    return out


@router.get("/checkins")
def list_checkins(
    user_id: Optional[str] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # Employees only see their own scans
    if not is_admin(user):
        user_id = str(user.id)
    return [timeclock.checkin_to_dict(c) for c in timeclock.list_checkins(db, user_id, on_date)]
