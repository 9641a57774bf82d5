"""
Ticket lifecycle.

    pendiente -> (awaiting client signature) -> terminado

The client signature is write-once and client downloads are capped. Both rules
are enforced with a single conditional UPDATE so concurrent requests cannot
overwrite a signature or overshoot the quota.
"""
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import AlreadySigned, NotFound, NotYetSigned, QuotaExceeded, ValidationError
from ..models.models import Company, Site, Ticket, User
from .ids import find_by_id, get_or_404, parse_id


logger = structlog.get_logger()

STATUS_PENDING = "pendiente"
STATUS_DONE = "terminado"


def ticket_to_dict(t: Ticket) -> dict:
    return {
        "id": str(t.id),
        "folio": t.folio,
        "title": t.title,
        "description": t.description,
        "site_id": str(t.site_id),
        "company_id": str(t.company_id) if t.company_id else None,
        "salesperson": t.salesperson or "",
        "photos": list(t.photos or []),
        "technician_name": t.technician_name,
        "technician_signature": t.technician_signature,
        "client_name": t.client_name,
        "client_signature": t.client_signature,
        "status": t.status,
        "client_downloads": t.client_downloads or 0,
        "created_at": t.created_at.isoformat() if t.created_at else None,
        "signed_at": t.signed_at.isoformat() if t.signed_at else None,
    }


def downloads_remaining(t: Ticket) -> int:
    return max(0, settings.client_download_limit - (t.client_downloads or 0))


def _check_photo_count(photos: List[str]) -> None:
    if len(photos) > settings.max_photos_per_upload:
        raise ValidationError(f"At most {settings.max_photos_per_upload} photos per upload")


def create_ticket(
    db: Session,
    folio: Optional[str],
    title: Optional[str],
    description: Optional[str],
    site_id: Optional[str],
    photos: Optional[List[str]] = None,
    technician_signature: Optional[str] = None,
    salesperson: Optional[str] = None,
    company_id: Optional[str] = None,
    technician_name: Optional[str] = None,
    created_by: Optional[User] = None,
) -> Ticket:
    if not (folio and title and description and site_id):
        raise ValidationError("folio, title, description and site_id are required")
    photos = list(photos or [])
    _check_photo_count(photos)
    site = get_or_404(db, Site, site_id, "Site")

    if not technician_name and created_by is not None:
        technician_name = created_by.full_name

    ticket = Ticket(
        folio=folio,
        title=title,
        description=description,
        site_id=site.id,
        salesperson=salesperson or "",
        # Malformed company ids are stored as absent
        company_id=parse_id(company_id),
        photos=photos,
        technician_signature=technician_signature,
        technician_name=technician_name,
        status=STATUS_PENDING,
        client_downloads=0,
        created_by=created_by.id if created_by is not None else None,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("ticket_created", ticket_id=str(ticket.id), site_id=str(site.id), folio=folio)
    return ticket


def list_for_site(db: Session, site_id: str) -> List[Ticket]:
    ident = parse_id(site_id)
    if ident is None:
        return []
    return db.query(Ticket).filter(Ticket.site_id == ident).order_by(Ticket.created_at.desc()).all()


def fetch_public(db: Session, ticket_id: str) -> dict:
    """Projection for the unauthenticated remote-signing page."""
    ticket = get_or_404(db, Ticket, ticket_id, "Ticket")
    if ticket.client_signature:
        return {
            "id": str(ticket.id),
            "already_signed": True,
            "downloads_remaining": downloads_remaining(ticket),
        }
    return {
        "id": str(ticket.id),
        "folio": ticket.folio,
        "title": ticket.title,
        "description": ticket.description,
        "photos": list(ticket.photos or []),
        "already_signed": False,
    }


def sign(db: Session, ticket_id: str, signature: Optional[str], client_name: Optional[str]) -> Ticket:
    if not signature or not client_name:
        raise ValidationError("signature and client_name are required")
    ident = parse_id(ticket_id)
    if ident is None:
        raise NotFound("Ticket not found")

    updated = (
        db.query(Ticket)
        .filter(Ticket.id == ident, Ticket.client_signature.is_(None))
        .update(
            {
                Ticket.client_signature: signature,
                Ticket.client_name: client_name,
                Ticket.status: STATUS_DONE,
                Ticket.signed_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    ticket = db.get(Ticket, ident)
    if ticket is None:
        raise NotFound("Ticket not found")
    if updated != 1:
        raise AlreadySigned()
    db.refresh(ticket)
    logger.info("ticket_signed", ticket_id=str(ticket.id))
    return ticket


def append_photos(db: Session, ticket_id: str, photos: List[str]) -> Ticket:
    if not photos:
        raise ValidationError("At least one photo is required")
    _check_photo_count(photos)
    ticket = get_or_404(db, Ticket, ticket_id, "Ticket")
    # Reassign a new list so the JSON column is flagged dirty
    ticket.photos = list(ticket.photos or []) + list(photos)
    db.commit()
    db.refresh(ticket)
    logger.info("ticket_photos_appended", ticket_id=str(ticket.id), added=len(photos), total=len(ticket.photos))
    return ticket


def resolve_company(db: Session, site: Optional[Site], ticket: Ticket) -> Optional[Company]:
    """Site's company first, then the ticket's own; dangling or malformed ids resolve to None."""
    for candidate in ((site.company_id if site else None), ticket.company_id):
        company = find_by_id(db, Company, candidate)
        if company is not None:
            return company
    return None


def request_download(db: Session, ticket_id: str) -> dict:
    ident = parse_id(ticket_id)
    if ident is None:
        raise NotFound("Ticket not found")
    limit = settings.client_download_limit

    updated = (
        db.query(Ticket)
        .filter(
            Ticket.id == ident,
            Ticket.client_signature.isnot(None),
            Ticket.client_downloads < limit,
        )
        .update({Ticket.client_downloads: Ticket.client_downloads + 1}, synchronize_session=False)
    )
    db.commit()

    ticket = db.get(Ticket, ident)
    if ticket is None:
        raise NotFound("Ticket not found")
    db.refresh(ticket)
    if updated != 1:
        if not ticket.client_signature:
            raise NotYetSigned()
        raise QuotaExceeded(downloads_remaining=0)

    site = find_by_id(db, Site, ticket.site_id)
    company = resolve_company(db, site, ticket)
    logger.info("ticket_downloaded", ticket_id=str(ticket.id), downloads=ticket.client_downloads)
    return {
        "ticket": ticket_to_dict(ticket),
        "site": {
            "id": str(site.id),
            "name": site.name,
            "location": site.location,
            "logo": site.logo,
        } if site else None,
        "company": {
            "id": str(company.id),
            "name": company.name,
            "logo": company.logo,
        } if company else None,
        "downloads_remaining": downloads_remaining(ticket),
    }
