"""
Legacy attendance: one record per user and day pairing entry and exit, checked
against the global schedule's geofence. Offline clients push batches through
``sync_records``.
"""
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from ..errors import OutsideGeofence, ValidationError
from ..models.models import Attendance, Schedule, User
from .geofence import inside_geofence
from .ids import find_by_id, get_or_404, parse_id
from .time_rules import utc_to_local


logger = structlog.get_logger()

TEMP_ID_PREFIX = "temp"

SYNC_FIELDS = (
    "user_name",
    "work_date",
    "service",
    "check_in_at",
    "check_in_lat",
    "check_in_lng",
    "check_in_photo",
    "check_out_at",
    "check_out_lat",
    "check_out_lng",
    "check_out_photo",
)


def _float(v) -> Optional[float]:
    return float(v) if v is not None else None


def _iso(v) -> Optional[str]:
    return v.isoformat() if v else None


def schedule_to_dict(s: Schedule) -> dict:
    geofence = None
    if s.geofence_lat is not None and s.geofence_lng is not None:
        geofence = {
            "lat": _float(s.geofence_lat),
            "lng": _float(s.geofence_lng),
            "radius_m": _float(s.geofence_radius_m),
        }
    return {
        "id": str(s.id),
        "name": s.name,
        "days": s.days or [],
        "geofence": geofence,
        "created_at": _iso(s.created_at),
    }


def attendance_to_dict(a: Attendance) -> dict:
    return {
        "id": str(a.id),
        "user_id": str(a.user_id),
        "user_name": a.user_name,
        "work_date": _iso(a.work_date),
        "service": a.service,
        "schedule_id": str(a.schedule_id) if a.schedule_id else None,
        "check_in": {
            "at": _iso(a.check_in_at),
            "lat": _float(a.check_in_lat),
            "lng": _float(a.check_in_lng),
            "photo": a.check_in_photo,
        } if a.check_in_at else None,
        "check_out": {
            "at": _iso(a.check_out_at),
            "lat": _float(a.check_out_lat),
            "lng": _float(a.check_out_lng),
            "photo": a.check_out_photo,
        } if a.check_out_at else None,
        "client_ref": a.client_ref,
        "created_at": _iso(a.created_at),
    }


def _set_geofence(s: Schedule, geofence: Optional[dict]) -> None:
    if geofence is None:
        s.geofence_lat = s.geofence_lng = s.geofence_radius_m = None
        return
    s.geofence_lat = geofence["lat"]
    s.geofence_lng = geofence["lng"]
    s.geofence_radius_m = geofence.get("radius_m")


def list_schedules(db: Session) -> List[Schedule]:
    return db.query(Schedule).order_by(Schedule.created_at.desc()).all()


def create_schedule(db: Session, name: str, days: List[dict], geofence: Optional[dict] = None) -> Schedule:
    row = Schedule(name=name, days=days or [])
    _set_geofence(row, geofence)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("schedule_created", schedule_id=str(row.id))
    return row


def update_schedule(db: Session, schedule_id: str, data: dict) -> Schedule:
    row = get_or_404(db, Schedule, schedule_id, "Schedule")
    if data.get("name"):
        row.name = data["name"]
    if data.get("days") is not None:
        row.days = data["days"]
    if data.get("clear_geofence"):
        _set_geofence(row, None)
    elif data.get("geofence") is not None:
        _set_geofence(row, data["geofence"])
    db.commit()
    db.refresh(row)
    logger.info("schedule_updated", schedule_id=str(row.id))
    return row


def delete_schedule(db: Session, schedule_id: str) -> str:
    row = get_or_404(db, Schedule, schedule_id, "Schedule")
    ident = str(row.id)
    db.delete(row)
    db.commit()
    logger.info("schedule_deleted", schedule_id=ident)
    return ident


def _schedule_for(db: Session, schedule_id: Optional[str]) -> Optional[Schedule]:
    if schedule_id:
        return find_by_id(db, Schedule, schedule_id)
    return db.query(Schedule).order_by(Schedule.created_at.desc()).first()


def _check_geofence(schedule: Optional[Schedule], gps: Optional[dict]) -> None:
    if schedule is None or not gps:
        return
    inside, distance = inside_geofence(
        gps["lat"], gps["lng"],
        _float(schedule.geofence_lat), _float(schedule.geofence_lng),
        _float(schedule.geofence_radius_m),
    )
    if not inside:
        raise OutsideGeofence(distance_m=round(distance or 0, 1), schedule_id=str(schedule.id))


def _open_record(db: Session, user_id) -> Optional[Attendance]:
    return (
        db.query(Attendance)
        .filter(Attendance.user_id == user_id, Attendance.check_in_at.isnot(None), Attendance.check_out_at.is_(None))
        .order_by(Attendance.created_at.desc())
        .first()
    )


def register_scan(
    db: Session,
    user: User,
    direction: str,
    service: Optional[str] = None,
    schedule_id: Optional[str] = None,
    gps: Optional[dict] = None,
    photo: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Attendance:
    schedule = _schedule_for(db, schedule_id)
    _check_geofence(schedule, gps)
    now = now or datetime.now(timezone.utc)
    open_row = _open_record(db, user.id)

    if direction == "in":
        if open_row is not None:
            raise ValidationError("There is already an open entry; register the exit first")
        row = Attendance(
            user_id=user.id,
            user_name=user.full_name,
            work_date=utc_to_local(now).date(),
            service=service,
            schedule_id=schedule.id if schedule else None,
            check_in_at=now,
            check_in_lat=gps["lat"] if gps else None,
            check_in_lng=gps["lng"] if gps else None,
            check_in_photo=photo,
        )
        db.add(row)
    else:
        if open_row is None:
            raise ValidationError("No open entry to close")
        row = open_row
        row.check_out_at = now
        row.check_out_lat = gps["lat"] if gps else None
        row.check_out_lng = gps["lng"] if gps else None
        row.check_out_photo = photo
        if service and not row.service:
            row.service = service
        row.updated_at = now
    db.commit()
    db.refresh(row)
    logger.info("attendance_scan", user_id=str(user.id), direction=direction, attendance_id=str(row.id))
    return row


def list_attendance(db: Session, user_id: Optional[str] = None, on_date: Optional[date] = None) -> List[Attendance]:
    q = db.query(Attendance)
    if user_id:
        ident = parse_id(user_id)
        if ident is None:
            return []
        q = q.filter(Attendance.user_id == ident)
    if on_date:
        q = q.filter(Attendance.work_date == on_date)
    return q.order_by(Attendance.created_at.desc()).all()


def _is_temporary(record_id: Optional[str]) -> bool:
    return not record_id or str(record_id).startswith(TEMP_ID_PREFIX) or parse_id(record_id) is None


def _apply(row: Attendance, data: dict) -> None:
    for field in SYNC_FIELDS:
        if data.get(field) is not None:
            setattr(row, field, data[field])


def sync_records(db: Session, actor: User, records: List[dict], allow_other_users: bool = False) -> Tuple[int, int, List[Attendance]]:
    """
    Bulk upsert from offline clients.

    Temporary ids are inserted as new rows (the temporary id is kept in
    ``client_ref`` so a retried batch does not duplicate them); real ids are
    merged into the stored row, overwriting only the fields present.
    """
    created = updated = 0
    out: List[Attendance] = []
    now = datetime.now(timezone.utc)
    for data in records:
        record_id = data.get("id")
        owner = parse_id(data.get("user_id")) if allow_other_users else None
        owner = owner or actor.id

        row = None
        if _is_temporary(record_id):
            if record_id:
                row = (
                    db.query(Attendance)
                    .filter(Attendance.user_id == owner, Attendance.client_ref == str(record_id))
                    .first()
                )
        else:
            row = db.get(Attendance, parse_id(record_id))
            if row is not None and row.user_id != owner and not allow_other_users:
                raise ValidationError(f"Record {record_id} belongs to another user")

        if row is None:
            row = Attendance(
                user_id=owner,
                user_name=data.get("user_name") or actor.full_name,
                work_date=data.get("work_date") or utc_to_local(data.get("check_in_at") or now).date(),
                client_ref=str(record_id) if _is_temporary(record_id) and record_id else None,
            )
            if not _is_temporary(record_id):
                # Unknown real id: keep the id the client already references
                row.id = parse_id(record_id)
            _apply(row, data)
            db.add(row)
            db.flush()
            created += 1
        else:
            _apply(row, data)
            row.updated_at = now
            updated += 1
        out.append(row)
    db.commit()
    for row in out:
        db.refresh(row)
    logger.info("attendance_synced", user_id=str(actor.id), created=created, updated=updated)
    return created, updated, out
