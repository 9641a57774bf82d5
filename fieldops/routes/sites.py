from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..schemas.catalog import SiteCreate, SiteUpdate, LogoUpdate
from ..services import catalog
from ..services.events import notify
from ..services.ids import get_or_404
from ..models.models import Site


router = APIRouter(prefix="/sites", tags=["sites"])


@router.get("")
def list_sites(company_id: Optional[str] = None, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return [catalog.site_to_dict(s) for s in catalog.list_sites(db, company_id)]


@router.get("/{site_id}")
def get_site(site_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return catalog.site_to_dict(get_or_404(db, Site, site_id, "Site"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_site(payload: SiteCreate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    row = catalog.create_site(db, payload.name, payload.location, payload.logo, payload.company_id)
    out = catalog.site_to_dict(row)
    notify("sites", "site_created", out)
    return out


@router.put("/{site_id}")
def update_site(site_id: str, payload: SiteUpdate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    row = catalog.update_site(db, site_id, payload.model_dump(exclude_unset=True))
    out = catalog.site_to_dict(row)
    notify("sites", "site_updated", out)
    return out


@router.put("/{site_id}/logo")
def update_site_logo(site_id: str, payload: LogoUpdate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    out = catalog.site_to_dict(catalog.update_site_logo(db, site_id, payload.logo))
    notify("sites", "site_updated", out)
    return out


@router.delete("/{site_id}")
def delete_site(site_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    result = catalog.delete_site(db, site_id)
    notify("sites", "site_deleted", {"id": result["id"]})
    if result["tickets_deleted"]:
        notify("tickets", "tickets_deleted", {"site_id": result["id"], "count": result["tickets_deleted"]})
    return result
