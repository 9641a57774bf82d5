"""
Service error taxonomy.

Services raise these; the handlers registered in ``main.create_app`` turn them
into ``{"detail": ..., "code": ...}`` JSON responses.
"""
from typing import Any, Dict, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError


logger = structlog.get_logger()


class ServiceError(Exception):
    status_code: int = 400
    code: str = "error"
    default_detail: str = "Request failed"

    def __init__(self, detail: Optional[str] = None, **extra: Any) -> None:
        self.detail = detail or self.default_detail
        self.extra: Dict[str, Any] = extra
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        body = {"detail": self.detail, "code": self.code}
        body.update(self.extra)
        return body


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"
    default_detail = "Invalid request"


class OutsideGeofence(ValidationError):
    code = "outside_geofence"
    default_detail = "Location is outside the allowed area"


class DomainNotAllowed(ServiceError):
    status_code = 400
    code = "domain_not_allowed"
    default_detail = "Email domain not allowed"


class DuplicateEmail(ServiceError):
    status_code = 409
    code = "duplicate_email"
    default_detail = "Email already registered"


class InvalidCredentials(ServiceError):
    status_code = 401
    code = "invalid_credentials"
    default_detail = "Invalid credentials"


class PasswordSetupRequired(ServiceError):
    status_code = 403
    code = "password_setup_required"
    default_detail = "Password setup required"

    def __init__(self, detail: Optional[str] = None, **extra: Any) -> None:
        extra.setdefault("require_password_setup", True)
        super().__init__(detail, **extra)


class SignatureSetupRequired(ServiceError):
    status_code = 403
    code = "signature_setup_required"
    default_detail = "Signature setup required"

    def __init__(self, detail: Optional[str] = None, **extra: Any) -> None:
        extra.setdefault("require_signature_setup", True)
        super().__init__(detail, **extra)


class AlreadyConfigured(ServiceError):
    status_code = 409
    code = "already_configured"
    default_detail = "Already configured"


class AlreadySigned(ServiceError):
    status_code = 409
    code = "already_signed"
    default_detail = "Ticket already signed by the client"


class NotYetSigned(ServiceError):
    status_code = 409
    code = "not_yet_signed"
    default_detail = "Ticket has not been signed by the client"


class QuotaExceeded(ServiceError):
    status_code = 429
    code = "quota_exceeded"
    default_detail = "Download limit reached"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"
    default_detail = "Forbidden"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class InternalError(ServiceError):
    status_code = 500
    code = "internal_error"
    default_detail = "Internal error"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("service_error", path=request.url.path, code=exc.code, detail=exc.detail)
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Never leak driver messages to clients
    logger.error("storage_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content=InternalError().to_dict())
