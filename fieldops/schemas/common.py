import re
from typing import Optional
from pydantic import BaseModel, field_validator


DATA_URI_RE = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,[A-Za-z0-9+/=\s]+$")


def ensure_data_uri(value: Optional[str]) -> Optional[str]:
    """Empty strings become None; anything else must be an inline base64 image."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if not DATA_URI_RE.match(value):
        raise ValueError("must be a base64 image data URI")
    return value


def empty_to_none(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class ShiftWindow(BaseModel):
    weekday: int
    active: bool = True
    start: str = "09:00"
    end: str = "18:00"

    @field_validator("weekday")
    @classmethod
    def weekday_range(cls, v):
        if v < 0 or v > 6:
            raise ValueError("weekday must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @field_validator("start", "end")
    @classmethod
    def hhmm(cls, v):
        if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$", str(v).strip()):
            raise ValueError("time must be HH:MM")
        return str(v).strip()


class GpsPoint(BaseModel):
    lat: float
    lng: float

    @field_validator("lat")
    @classmethod
    def lat_range(cls, v):
        if v < -90 or v > 90:
            raise ValueError("lat out of range")
        return v

    @field_validator("lng")
    @classmethod
    def lng_range(cls, v):
        if v < -180 or v > 180:
            raise ValueError("lng out of range")
        return v


class Geofence(GpsPoint):
    radius_m: Optional[float] = None
