"""
Time clock settings singleton and per-scan check-ins.
"""
from datetime import date, datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import OutsideGeofence
from ..models.models import CheckIn, TimeclockSettings, User
from .geofence import inside_geofence
from .ids import parse_id
from .time_rules import default_schedule, evaluate_scan, utc_to_local


logger = structlog.get_logger()

SETTINGS_KEY = "timeclock"


def _float(v) -> Optional[float]:
    return float(v) if v is not None else None


def get_settings(db: Session) -> TimeclockSettings:
    """Return the singleton, creating it with the default schedule when absent."""
    row = db.get(TimeclockSettings, SETTINGS_KEY)
    if row is not None:
        return row
    row = TimeclockSettings(
        key=SETTINGS_KEY,
        version=1,
        schedule=default_schedule(),
        tolerance_minutes=settings.tolerance_window_min,
        updated_at=datetime.now(timezone.utc),
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        return db.get(TimeclockSettings, SETTINGS_KEY)
    db.refresh(row)
    logger.info("timeclock_settings_initialized")
    return row


def settings_to_dict(row: TimeclockSettings) -> dict:
    # Optional fields are defaulted at read time
    geofence = None
    if row.geofence_lat is not None and row.geofence_lng is not None:
        geofence = {
            "lat": _float(row.geofence_lat),
            "lng": _float(row.geofence_lng),
            "radius_m": _float(row.geofence_radius_m) if row.geofence_radius_m is not None else float(settings.geo_radius_m_default),
        }
    return {
        "version": row.version or 1,
        "schedule": row.schedule or default_schedule(),
        "tolerance_minutes": row.tolerance_minutes if row.tolerance_minutes is not None else settings.tolerance_window_min,
        "geofence": geofence,
        "timezone": settings.tz_default,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def update_settings(
    db: Session,
    schedule: Optional[List[dict]] = None,
    tolerance_minutes: Optional[int] = None,
    geofence: Optional[dict] = None,
    clear_geofence: bool = False,
) -> TimeclockSettings:
    row = get_settings(db)
    if schedule is not None:
        row.schedule = schedule
    if tolerance_minutes is not None:
        row.tolerance_minutes = tolerance_minutes
    if clear_geofence:
        row.geofence_lat = row.geofence_lng = row.geofence_radius_m = None
    elif geofence is not None:
        row.geofence_lat = geofence["lat"]
        row.geofence_lng = geofence["lng"]
        row.geofence_radius_m = geofence.get("radius_m")
    row.version = (row.version or 1) + 1
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    logger.info("timeclock_settings_updated", version=row.version)
    return row


def checkin_to_dict(c: CheckIn) -> dict:
    return {
        "id": str(c.id),
        "user_id": str(c.user_id),
        "user_name": c.user_name,
        "direction": c.direction,
        "service": c.service,
        "gps": {"lat": _float(c.gps_lat), "lng": _float(c.gps_lng)} if c.gps_lat is not None else None,
        "photo": c.photo,
        "status": c.status,
        "minutes_off": c.minutes_off,
        "date": c.local_date.isoformat() if c.local_date else None,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


def record_checkin(
    db: Session,
    user: User,
    direction: str,
    service: Optional[str] = None,
    gps: Optional[dict] = None,
    photo: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckIn:
    cfg = settings_to_dict(get_settings(db))
    fence = cfg["geofence"]
    if fence and gps:
        inside, distance = inside_geofence(gps["lat"], gps["lng"], fence["lat"], fence["lng"], fence["radius_m"])
        if not inside:
            raise OutsideGeofence(distance_m=round(distance or 0, 1), radius_m=fence["radius_m"])

    now = now or datetime.now(timezone.utc)
    # Users with a custom schedule are evaluated against it instead of the global one
    schedule = user.custom_schedule or cfg["schedule"]
    status, minutes_off = evaluate_scan(now, direction, schedule, cfg["tolerance_minutes"])

    row = CheckIn(
        user_id=user.id,
        user_name=user.full_name,
        direction=direction,
        service=service,
        gps_lat=gps["lat"] if gps else None,
        gps_lng=gps["lng"] if gps else None,
        photo=photo,
        status=status,
        minutes_off=minutes_off,
        local_date=utc_to_local(now).date(),
        created_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("checkin_recorded", user_id=str(user.id), direction=direction, status=status)
    return row


def list_checkins(db: Session, user_id: Optional[str] = None, on_date: Optional[date] = None) -> List[CheckIn]:
    q = db.query(CheckIn)
    if user_id:
        ident = parse_id(user_id)
        if ident is None:
            return []
        q = q.filter(CheckIn.user_id == ident)
    if on_date:
        q = q.filter(CheckIn.local_date == on_date)
    return q.order_by(CheckIn.created_at.desc()).all()
