from typing import Optional
from pydantic import BaseModel, field_validator

from .common import ensure_data_uri, empty_to_none


class CompanyCreate(BaseModel):
    name: str
    logo: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_required(cls, v):
        v = empty_to_none(v)
        if v is None:
            raise ValueError("name is required")
        return v

    @field_validator("logo", mode="before")
    @classmethod
    def logo_uri(cls, v):
        return ensure_data_uri(v)


class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    logo: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return empty_to_none(v)

    @field_validator("logo", mode="before")
    @classmethod
    def logo_uri(cls, v):
        return ensure_data_uri(v)


class SiteCreate(BaseModel):
    name: str
    location: str
    logo: Optional[str] = None
    company_id: Optional[str] = None

    @field_validator("name", "location", mode="before")
    @classmethod
    def required_text(cls, v):
        v = empty_to_none(v)
        if v is None:
            raise ValueError("field is required")
        return v

    @field_validator("company_id", mode="before")
    @classmethod
    def strip_company(cls, v):
        return empty_to_none(v)

    @field_validator("logo", mode="before")
    @classmethod
    def logo_uri(cls, v):
        return ensure_data_uri(v)


class SiteUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    company_id: Optional[str] = None

    @field_validator("name", "location", "company_id", mode="before")
    @classmethod
    def strip_fields(cls, v):
        return empty_to_none(v)


class LogoUpdate(BaseModel):
    logo: Optional[str] = None

    @field_validator("logo", mode="before")
    @classmethod
    def logo_uri(cls, v):
        return ensure_data_uri(v)
