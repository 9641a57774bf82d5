from datetime import date
from typing import Optional
from pydantic import BaseModel, field_validator


VACATION_STATUSES = ("pending", "approved", "rejected")


class VacationCreate(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = None


class VacationStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def known_status(cls, v):
        v = (v or "").strip().lower()
        if v not in VACATION_STATUSES:
            raise ValueError("status must be pending, approved or rejected")
        return v
