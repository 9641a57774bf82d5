from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User
from ..schemas.auth import (
    RegisterRequest,
    LoginRequest,
    LoginResponse,
    SetPasswordRequest,
    SetSignatureRequest,
    TokenResponse,
    UserOut,
)
from ..services import accounts
from ..services.events import notify
from ..services.ids import find_by_id
from .security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
)


router = APIRouter(prefix="/auth", tags=["auth"])


def _login_response(user: User) -> LoginResponse:
    return LoginResponse(
        access_token=create_access_token(str(user.id), role=user.role),
        refresh_token=create_refresh_token(str(user.id)),
        user=UserOut(**accounts.user_to_dict(user)),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = accounts.register(
        db,
        name=payload.name,
        surname=payload.surname,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        signature=payload.signature,
    )
    out = accounts.user_to_dict(user)
    notify("users", "user_created", out)
    return {"message": "User registered", "state": accounts.account_state(user), "user": out}


@router.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = accounts.login(db, req.email, req.password)
    return _login_response(user)


@router.post("/set-password")
def set_password(req: SetPasswordRequest, db: Session = Depends(get_db)):
    user = accounts.set_password(db, req.email, req.password)
    return {"message": "Password configured", "state": accounts.account_state(user)}


@router.post("/set-signature")
def set_signature(req: SetSignatureRequest, db: Session = Depends(get_db)):
    user = accounts.set_signature(db, req.email, req.password, req.signature)
    return {"message": "Signature configured", "state": accounts.account_state(user)}


@router.post("/refresh", response_model=TokenResponse)
def refresh(token: str, db: Session = Depends(get_db)):
    payload = decode_token(token)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=400, detail="Invalid refresh token")
    user = find_by_id(db, User, payload.get("sub"))
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not active")
    return TokenResponse(
        access_token=create_access_token(str(user.id), role=user.role),
        refresh_token=create_refresh_token(str(user.id)),
    )


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return UserOut(**accounts.user_to_dict(user))
