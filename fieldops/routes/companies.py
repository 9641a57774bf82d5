from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..schemas.catalog import CompanyCreate, CompanyUpdate
from ..services import catalog
from ..services.events import notify
from ..services.ids import get_or_404
from ..models.models import Company


router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("")
def list_companies(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return [catalog.company_to_dict(c) for c in catalog.list_companies(db)]


@router.get("/{company_id}")
def get_company(company_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return catalog.company_to_dict(get_or_404(db, Company, company_id, "Company"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_company(payload: CompanyCreate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    out = catalog.company_to_dict(catalog.create_company(db, payload.name, payload.logo))
    notify("companies", "company_created", out)
    return out


@router.put("/{company_id}")
def update_company(company_id: str, payload: CompanyUpdate, db: Session = Depends(get_db), _=Depends(get_current_user)):
    row = catalog.update_company(db, company_id, payload.model_dump(exclude_unset=True))
    out = catalog.company_to_dict(row)
    notify("companies", "company_updated", out)
    return out


@router.delete("/{company_id}")
def delete_company(company_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    result = catalog.delete_company(db, company_id)
    notify("companies", "company_deleted", {"id": result["id"]})
    return result
