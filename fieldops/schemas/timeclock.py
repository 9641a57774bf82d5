from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, field_validator

from .common import ShiftWindow, GpsPoint, Geofence, ensure_data_uri, empty_to_none


def _direction(v):
    v = (v or "").strip().lower()
    # Older clients send entrada/salida
    aliases = {"entrada": "in", "salida": "out"}
    v = aliases.get(v, v)
    if v not in {"in", "out"}:
        raise ValueError("direction must be 'in' or 'out'")
    return v


class TimeclockSettingsUpdate(BaseModel):
    schedule: Optional[List[ShiftWindow]] = None
    tolerance_minutes: Optional[int] = None
    geofence: Optional[Geofence] = None
    clear_geofence: bool = False

    @field_validator("tolerance_minutes")
    @classmethod
    def non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("tolerance_minutes must be >= 0")
        return v


class CheckInCreate(BaseModel):
    direction: str
    service: Optional[str] = None
    gps: Optional[GpsPoint] = None
    photo: Optional[str] = None

    @field_validator("direction", mode="before")
    @classmethod
    def known_direction(cls, v):
        return _direction(v)

    @field_validator("service", mode="before")
    @classmethod
    def strip_service(cls, v):
        return empty_to_none(v)

    @field_validator("photo", mode="before")
    @classmethod
    def photo_uri(cls, v):
        return ensure_data_uri(v)


class ScheduleCreate(BaseModel):
    name: str
    days: List[ShiftWindow] = []
    geofence: Optional[Geofence] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_required(cls, v):
        v = empty_to_none(v)
        if v is None:
            raise ValueError("name is required")
        return v


class ScheduleUpdate(BaseModel):
    name: Optional[str] = None
    days: Optional[List[ShiftWindow]] = None
    geofence: Optional[Geofence] = None
    clear_geofence: bool = False


class AttendanceCreate(BaseModel):
    direction: str
    service: Optional[str] = None
    schedule_id: Optional[str] = None
    gps: Optional[GpsPoint] = None
    photo: Optional[str] = None

    @field_validator("direction", mode="before")
    @classmethod
    def known_direction(cls, v):
        return _direction(v)

    @field_validator("service", "schedule_id", mode="before")
    @classmethod
    def strip_fields(cls, v):
        return empty_to_none(v)

    @field_validator("photo", mode="before")
    @classmethod
    def photo_uri(cls, v):
        return ensure_data_uri(v)


class AttendanceSyncRecord(BaseModel):
    """Offline record; ids starting with 'temp' were assigned by the client."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    work_date: Optional[date] = None
    service: Optional[str] = None
    check_in_at: Optional[datetime] = None
    check_in_lat: Optional[float] = None
    check_in_lng: Optional[float] = None
    check_in_photo: Optional[str] = None
    check_out_at: Optional[datetime] = None
    check_out_lat: Optional[float] = None
    check_out_lng: Optional[float] = None
    check_out_photo: Optional[str] = None

    @field_validator("check_in_photo", "check_out_photo", mode="before")
    @classmethod
    def photo_uri(cls, v):
        return ensure_data_uri(v)


class AttendanceSyncRequest(BaseModel):
    records: List[AttendanceSyncRecord] = []
