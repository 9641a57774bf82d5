from typing import Optional, List
from pydantic import BaseModel, field_validator

from .common import ensure_data_uri, empty_to_none


class TicketCreate(BaseModel):
    folio: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    site_id: Optional[str] = None
    salesperson: Optional[str] = None
    company_id: Optional[str] = None
    technician_name: Optional[str] = None
    technician_signature: Optional[str] = None
    photos: List[str] = []

    @field_validator("folio", "title", "description", "site_id", "salesperson", "company_id", "technician_name", mode="before")
    @classmethod
    def strip_fields(cls, v):
        return empty_to_none(v)

    @field_validator("technician_signature", mode="before")
    @classmethod
    def signature_uri(cls, v):
        return ensure_data_uri(v)

    @field_validator("photos", mode="before")
    @classmethod
    def photo_uris(cls, v):
        if v is None:
            return []
        return [p for p in (ensure_data_uri(x) for x in v) if p]


class PhotosAppend(BaseModel):
    photos: List[str] = []

    @field_validator("photos", mode="before")
    @classmethod
    def photo_uris(cls, v):
        if v is None:
            return []
        return [p for p in (ensure_data_uri(x) for x in v) if p]


class ClientSignRequest(BaseModel):
    signature: Optional[str] = None
    client_name: Optional[str] = None

    @field_validator("signature", mode="before")
    @classmethod
    def signature_uri(cls, v):
        return ensure_data_uri(v)

    @field_validator("client_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return empty_to_none(v)
