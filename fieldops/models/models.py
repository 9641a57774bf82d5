import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    Integer,
    Numeric,
    JSON,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    # Legacy accounts predate passwords and signatures; both stay NULL until set
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))
    signature: Mapped[Optional[str]] = mapped_column(Text)  # data URI
    role: Mapped[str] = mapped_column(String(20), default="employee", nullable=False)  # admin|employee
    custom_schedule: Mapped[Optional[list]] = mapped_column(JSON)  # [{weekday, active, start, end}]
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    @property
    def full_name(self) -> str:
        return " ".join(x for x in [self.name, self.surname] if x)


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    logo: Mapped[Optional[str]] = mapped_column(Text)  # data URI
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Site(Base):
    __tablename__ = "sites"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    logo: Mapped[Optional[str]] = mapped_column(Text)
    # Soft reference: unlinked (set NULL) when the company is deleted
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Ticket(Base):
    """Service ticket (entregable) signed by the technician and the client"""
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = uuid_pk()
    folio: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    site_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)
    salesperson: Mapped[Optional[str]] = mapped_column(String(255), default="")
    photos: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # ordered data URIs
    technician_signature: Mapped[Optional[str]] = mapped_column(Text)
    technician_name: Mapped[Optional[str]] = mapped_column(String(255))
    client_signature: Mapped[Optional[str]] = mapped_column(Text)  # write-once
    client_name: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="pendiente", nullable=False)  # pendiente|terminado
    client_downloads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index('idx_tickets_site_created', 'site_id', 'created_at'),
    )


class TimeclockSettings(Base):
    """Singleton time clock configuration (key is always 'timeclock')"""
    __tablename__ = "timeclock_settings"

    key: Mapped[str] = mapped_column(String(50), primary_key=True, default="timeclock")
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    schedule: Mapped[Optional[list]] = mapped_column(JSON)  # 7 shift windows
    tolerance_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    geofence_lat: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    geofence_lng: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    geofence_radius_m: Mapped[Optional[float]] = mapped_column(Numeric(10, 2))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Schedule(Base):
    """Global work schedule with an optional geofence (legacy attendance era)"""
    __tablename__ = "schedules"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    days: Mapped[Optional[list]] = mapped_column(JSON)
    geofence_lat: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    geofence_lng: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    geofence_radius_m: Mapped[Optional[float]] = mapped_column(Numeric(10, 2))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Attendance(Base):
    """Paired entry/exit attendance record (legacy era)"""
    __tablename__ = "attendance"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(255))
    work_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    service: Mapped[Optional[str]] = mapped_column(String(255))
    schedule_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    check_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    check_in_lat: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    check_in_lng: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    check_in_photo: Mapped[Optional[str]] = mapped_column(Text)
    check_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    check_out_lat: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    check_out_lng: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    check_out_photo: Mapped[Optional[str]] = mapped_column(Text)
    client_ref: Mapped[Optional[str]] = mapped_column(String(100))  # temporary id from offline clients, unique per user
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index('idx_attendance_user_date', 'user_id', 'work_date'),
        UniqueConstraint('user_id', 'client_ref', name='uq_attendance_user_client_ref'),
    )


class CheckIn(Base):
    """One row per time clock scan"""
    __tablename__ = "checkins"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(255))
    direction: Mapped[str] = mapped_column(String(10), nullable=False)  # in|out
    service: Mapped[Optional[str]] = mapped_column(String(255))
    gps_lat: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    gps_lng: Mapped[Optional[float]] = mapped_column(Numeric(10, 7))
    photo: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="unscheduled")  # on_time|late|early|unscheduled
    minutes_off: Mapped[Optional[int]] = mapped_column(Integer)
    local_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        Index('idx_checkins_user_created', 'user_id', 'created_at'),
    )


class Vacation(Base):
    __tablename__ = "vacations"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(255))
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(1000))
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)  # pending|approved|rejected
    decided_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class ConfigEntry(Base):
    """Generic key/value application config"""
    __tablename__ = "config_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Optional[dict]] = mapped_column(JSON)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
