from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user, require_admin, is_admin
from ..errors import ValidationError
from ..models.models import User, Vacation
from ..schemas.vacations import VacationCreate, VacationStatusUpdate, VACATION_STATUSES
from ..services.events import notify
from ..services.ids import get_or_404


logger = structlog.get_logger()

router = APIRouter(prefix="/vacations", tags=["vacations"])


def _vacation_to_dict(v: Vacation) -> dict:
    return {
        "id": str(v.id),
        "user_id": str(v.user_id),
        "user_name": v.user_name,
        "start_date": v.start_date.isoformat(),
        "end_date": v.end_date.isoformat(),
        "days": (v.end_date - v.start_date).days + 1,
        "reason": v.reason,
        "status": v.status,
        "decided_by": str(v.decided_by) if v.decided_by else None,
        "decided_at": v.decided_at.isoformat() if v.decided_at else None,
        "created_at": v.created_at.isoformat() if v.created_at else None,
    }


@router.get("")
def list_vacations(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    q = db.query(Vacation)
    if not is_admin(user):
        q = q.filter(Vacation.user_id == user.id)
    if status_filter:
        status_filter = status_filter.strip().lower()
        if status_filter not in VACATION_STATUSES:
            raise ValidationError("status must be pending, approved or rejected")
        q = q.filter(Vacation.status == status_filter)
    return [_vacation_to_dict(v) for v in q.order_by(Vacation.created_at.desc()).all()]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_vacation(payload: VacationCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if payload.start_date > payload.end_date:
        raise ValidationError("start_date must be on or before end_date")
    row = Vacation(
        user_id=user.id,
        user_name=user.full_name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=(payload.reason or "").strip() or None,
        status="pending",
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("vacation_requested", vacation_id=str(row.id), user_id=str(user.id))
    out = _vacation_to_dict(row)
    notify("vacations", "vacation_created", out)
    return out


@router.put("/{vacation_id}/status")
def update_vacation_status(
    vacation_id: str,
    payload: VacationStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    row = get_or_404(db, Vacation, vacation_id, "Vacation")
    row.status = payload.status
    if payload.status == "pending":
        row.decided_by = None
        row.decided_at = None
    else:
        row.decided_by = admin.id
        row.decided_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    logger.info("vacation_status_updated", vacation_id=str(row.id), status=row.status)
    out = _vacation_to_dict(row)
    notify("vacations", "vacation_updated", out)
    return out
