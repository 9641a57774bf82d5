"""
Companies and work sites.

Deleting a site cascades to its tickets; deleting a company only unlinks the
sites and tickets that reference it.
"""
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..models.models import Company, Site, Ticket
from .ids import get_or_404, parse_id


logger = structlog.get_logger()


def company_to_dict(c: Company) -> dict:
    return {
        "id": str(c.id),
        "name": c.name,
        "logo": c.logo,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


def site_to_dict(s: Site) -> dict:
    return {
        "id": str(s.id),
        "name": s.name,
        "location": s.location,
        "logo": s.logo,
        "company_id": str(s.company_id) if s.company_id else None,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


def list_companies(db: Session) -> List[Company]:
    return db.query(Company).order_by(Company.created_at.desc()).all()


def create_company(db: Session, name: str, logo: Optional[str] = None) -> Company:
    row = Company(name=name, logo=logo)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("company_created", company_id=str(row.id))
    return row


def update_company(db: Session, company_id: str, data: dict) -> Company:
    row = get_or_404(db, Company, company_id, "Company")
    for field in ("name", "logo"):
        if field in data:
            if field == "name" and not data[field]:
                continue
            setattr(row, field, data[field])
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    return row


def delete_company(db: Session, company_id: str) -> dict:
    row = get_or_404(db, Company, company_id, "Company")
    ident = str(row.id)
    sites = (
        db.query(Site)
        .filter(Site.company_id == row.id)
        .update({Site.company_id: None}, synchronize_session=False)
    )
    tickets = (
        db.query(Ticket)
        .filter(Ticket.company_id == row.id)
        .update({Ticket.company_id: None}, synchronize_session=False)
    )
    db.delete(row)
    db.commit()
    logger.info("company_deleted", company_id=ident, sites_unlinked=sites, tickets_unlinked=tickets)
    return {"id": ident, "sites_unlinked": sites, "tickets_unlinked": tickets}


def list_sites(db: Session, company_id: Optional[str] = None) -> List[Site]:
    q = db.query(Site)
    if company_id:
        ident = parse_id(company_id)
        if ident is None:
            return []
        q = q.filter(Site.company_id == ident)
    return q.order_by(Site.created_at.desc()).all()


def _company_ref(db: Session, company_id: Optional[str]):
    if not company_id:
        return None
    return get_or_404(db, Company, company_id, "Company").id


def create_site(
    db: Session,
    name: str,
    location: str,
    logo: Optional[str] = None,
    company_id: Optional[str] = None,
) -> Site:
    row = Site(name=name, location=location, logo=logo, company_id=_company_ref(db, company_id))
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("site_created", site_id=str(row.id))
    return row


def update_site(db: Session, site_id: str, data: dict) -> Site:
    row = get_or_404(db, Site, site_id, "Site")
    if data.get("name"):
        row.name = data["name"]
    if data.get("location"):
        row.location = data["location"]
    if "company_id" in data:
        row.company_id = _company_ref(db, data["company_id"])
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    return row


def update_site_logo(db: Session, site_id: str, logo: Optional[str]) -> Site:
    row = get_or_404(db, Site, site_id, "Site")
    row.logo = logo
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    return row


def delete_site(db: Session, site_id: str) -> dict:
    row = get_or_404(db, Site, site_id, "Site")
    ident = str(row.id)
    removed = (
        db.query(Ticket)
        .filter(Ticket.site_id == row.id)
        .delete(synchronize_session=False)
    )
    db.delete(row)
    db.commit()
    logger.info("site_deleted", site_id=ident, tickets_deleted=removed)
    return {"id": ident, "tickets_deleted": removed}
