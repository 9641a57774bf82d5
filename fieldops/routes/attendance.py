from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user, is_admin
from ..models.models import User
from ..schemas.timeclock import AttendanceCreate, AttendanceSyncRequest
from ..services import attendance
from ..services.events import notify


router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("")
def list_attendance(
    user_id: Optional[str] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not is_admin(user):
        user_id = str(user.id)
    return [attendance.attendance_to_dict(a) for a in attendance.list_attendance(db, user_id, on_date)]


@router.post("", status_code=status.HTTP_201_CREATED)
def register_attendance(payload: AttendanceCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    row = attendance.register_scan(
        db,
        user,
        direction=payload.direction,
        service=payload.service,
        schedule_id=payload.schedule_id,
        gps=payload.gps.model_dump() if payload.gps else None,
        photo=payload.photo,
    )
    out = attendance.attendance_to_dict(row)
    event = "attendance_opened" if payload.direction == "in" else "attendance_closed"
    notify("attendance", event, {"id": out["id"], "user_id": out["user_id"], "work_date": out["work_date"]})
    return out


@router.post("/sync")
def sync_attendance(payload: AttendanceSyncRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Bulk upsert of records captured offline."""
    records = [r.model_dump(exclude_unset=True) for r in payload.records]
    created, updated, rows = attendance.sync_records(db, user, records, allow_other_users=is_admin(user))
    notify("attendance", "attendance_synced", {"user_id": str(user.id), "created": created, "updated": updated})
    return {
        "created": created,
        "updated": updated,
        "records": [attendance.attendance_to_dict(r) for r in rows],
    }
