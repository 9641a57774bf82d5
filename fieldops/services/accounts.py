"""
Account provisioning state machine.

    Registered (no password) -> PasswordSet (no signature) -> Active

Accounts created before passwords or signatures existed are migrated lazily:
each login reports the first incomplete step so the client can prompt for it.
"""
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash, verify_password
from ..config import settings
from ..errors import (
    AlreadyConfigured,
    DomainNotAllowed,
    DuplicateEmail,
    InvalidCredentials,
    NotFound,
    PasswordSetupRequired,
    SignatureSetupRequired,
    ValidationError,
)
from ..models.models import User
from .ids import get_or_404


logger = structlog.get_logger()


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def is_corporate_email(email: str) -> bool:
    domain = settings.corporate_email_domain.strip().lower()
    if not domain.startswith("@"):
        domain = "@" + domain
    return normalize_email(email).endswith(domain)


def account_state(user: User) -> str:
    if not user.password_hash:
        return "registered"
    if not user.signature:
        return "password_set"
    return "active"


def user_to_dict(user: User) -> dict:
    """Public projection; never includes the password hash or the signature image."""
    return {
        "id": str(user.id),
        "name": user.name,
        "surname": user.surname,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "custom_schedule": user.custom_schedule,
        "has_password": bool(user.password_hash),
        "has_signature": bool(user.signature),
        "is_active": bool(user.is_active),
    }


def _find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register(
    db: Session,
    name: Optional[str],
    surname: Optional[str],
    email: Optional[str],
    phone: Optional[str],
    password: Optional[str] = None,
    signature: Optional[str] = None,
) -> User:
    missing = [label for label, value in (("name", name), ("surname", surname), ("email", email), ("phone", phone)) if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if signature and not password:
        raise ValidationError("A password is required to register a signature")
    if not is_corporate_email(email):
        raise DomainNotAllowed(f"Only {settings.corporate_email_domain} emails are allowed")
    if _find_by_email(db, email):
        raise DuplicateEmail()

    user = User(
        name=name,
        surname=surname,
        email=normalize_email(email),
        phone=phone,
        password_hash=get_password_hash(password) if password else None,
        signature=signature,
        role="employee",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same email
        db.rollback()
        raise DuplicateEmail()
    db.refresh(user)
    logger.info("user_registered", user_id=str(user.id), state=account_state(user))
    return user


def login(db: Session, email: str, password: Optional[str]) -> User:
    if not is_corporate_email(email):
        raise DomainNotAllowed(f"Only {settings.corporate_email_domain} emails are allowed")
    user = _find_by_email(db, email)
    if user is None or not user.is_active:
        raise InvalidCredentials()
    if not user.password_hash:
        raise PasswordSetupRequired(email=user.email)
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    if settings.signature_required and not user.signature:
        raise SignatureSetupRequired(email=user.email)
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("user_login", user_id=str(user.id))
    return user


def set_password(db: Session, email: str, password: str) -> User:
    user = _find_by_email(db, email)
    if user is None:
        raise NotFound("User not found")
    if user.password_hash:
        raise AlreadyConfigured("Password already configured")
    # Conditional write so two concurrent setup attempts cannot both succeed
    updated = (
        db.query(User)
        .filter(User.id == user.id, User.password_hash.is_(None))
        .update({User.password_hash: get_password_hash(password)}, synchronize_session=False)
    )
    db.commit()
    if updated != 1:
        raise AlreadyConfigured("Password already configured")
    db.refresh(user)
    logger.info("user_password_set", user_id=str(user.id))
    return user


def set_signature(db: Session, email: str, password: str, signature: str) -> User:
    user = _find_by_email(db, email)
    if user is None:
        raise NotFound("User not found")
    if not user.password_hash:
        raise PasswordSetupRequired(email=user.email)
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    if user.signature:
        raise AlreadyConfigured("Signature already configured")
    updated = (
        db.query(User)
        .filter(User.id == user.id, User.signature.is_(None))
        .update({User.signature: signature}, synchronize_session=False)
    )
    db.commit()
    if updated != 1:
        raise AlreadyConfigured("Signature already configured")
    db.refresh(user)
    logger.info("user_signature_set", user_id=str(user.id))
    return user


def assign_role(db: Session, user_id: str, role: str) -> User:
    user = get_or_404(db, User, user_id, "User")
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("user_role_assigned", user_id=str(user.id), role=role)
    return user


def assign_schedule(db: Session, user_id: str, custom_schedule: Optional[List[dict]]) -> User:
    user = get_or_404(db, User, user_id, "User")
    user.custom_schedule = custom_schedule
    db.commit()
    db.refresh(user)
    logger.info("user_schedule_assigned", user_id=str(user.id))
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at.desc()).all()
