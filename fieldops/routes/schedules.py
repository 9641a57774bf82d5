from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..models.models import Schedule
from ..schemas.timeclock import ScheduleCreate, ScheduleUpdate
from ..services import attendance
from ..services.events import notify
from ..services.ids import get_or_404


router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.get("")
def list_schedules(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return [attendance.schedule_to_dict(s) for s in attendance.list_schedules(db)]


@router.get("/{schedule_id}")
def get_schedule(schedule_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return attendance.schedule_to_dict(get_or_404(db, Schedule, schedule_id, "Schedule"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_schedule(payload: ScheduleCreate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    row = attendance.create_schedule(
        db,
        payload.name,
        [d.model_dump() for d in payload.days],
        payload.geofence.model_dump() if payload.geofence else None,
    )
    out = attendance.schedule_to_dict(row)
    notify("schedules", "schedule_created", out)
    return out


@router.put("/{schedule_id}")
def update_schedule(schedule_id: str, payload: ScheduleUpdate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    row = attendance.update_schedule(db, schedule_id, payload.model_dump(exclude_unset=True))
    out = attendance.schedule_to_dict(row)
    notify("schedules", "schedule_updated", out)
    return out


@router.delete("/{schedule_id}")
def delete_schedule(schedule_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    ident = attendance.delete_schedule(db, schedule_id)
    notify("schedules", "schedule_deleted", {"id": ident})
    return {"id": ident}
