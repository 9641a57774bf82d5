"""
Ticket routes.

``/tickets/...`` is used by technicians and requires a session. ``/ticket/{id}``
is the public remote-signing link opened by the client without logging in.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_user
from ..models.models import User
from ..schemas.tickets import TicketCreate, PhotosAppend, ClientSignRequest
from ..services import tickets as ticket_service
from ..services.events import notify


router = APIRouter(tags=["tickets"])


@router.get("/tickets/{site_id}")
def list_site_tickets(site_id: str, db: Session = Depends(get_db), _=Depends(get_current_user)):
    return [ticket_service.ticket_to_dict(t) for t in ticket_service.list_for_site(db, site_id)]


@router.post("/tickets", status_code=status.HTTP_201_CREATED)
def create_ticket(payload: TicketCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ticket = ticket_service.create_ticket(
        db,
        folio=payload.folio,
        title=payload.title,
        description=payload.description,
        site_id=payload.site_id,
        photos=payload.photos,
        technician_signature=payload.technician_signature,
        salesperson=payload.salesperson,
        company_id=payload.company_id,
        technician_name=payload.technician_name,
        created_by=user,
    )
    out = ticket_service.ticket_to_dict(ticket)
    notify("tickets", "ticket_created", out)
    return out


@router.post("/tickets/{ticket_id}/photos")
def append_photos(ticket_id: str, payload: PhotosAppend, db: Session = Depends(get_db), _=Depends(get_current_user)):
    ticket = ticket_service.append_photos(db, ticket_id, payload.photos)
    out = ticket_service.ticket_to_dict(ticket)
    notify("tickets", "ticket_updated", {"id": out["id"], "site_id": out["site_id"], "photos": len(out["photos"])})
    return out


# Public remote-signing link


@router.get("/ticket/{ticket_id}")
def get_public_ticket(ticket_id: str, db: Session = Depends(get_db)):
    return ticket_service.fetch_public(db, ticket_id)


@router.post("/ticket/{ticket_id}/sign")
def sign_ticket(ticket_id: str, payload: ClientSignRequest, db: Session = Depends(get_db)):
    ticket = ticket_service.sign(db, ticket_id, payload.signature, payload.client_name)
    notify("tickets", "ticket_signed", {"id": str(ticket.id), "site_id": str(ticket.site_id)})
    return {
        "message": "Signature saved",
        "id": str(ticket.id),
        "status": ticket.status,
        "downloads_remaining": ticket_service.downloads_remaining(ticket),
    }


@router.post("/ticket/{ticket_id}/download-pdf")
def download_ticket(ticket_id: str, db: Session = Depends(get_db)):
    return ticket_service.request_download(db, ticket_id)
