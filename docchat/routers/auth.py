from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from ..config import settings
from ..dependencies.auth import AuthContext, clear_session_cookie, finalize_login, issue_magic_link, require_auth
from ..dependencies.db import get_db
from ..models import User
from ..services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


class MagicLinkRequest(BaseModel):
    email: EmailStr
    redirect_path: str | None = Field(default="/dashboard")


class SessionPayload(BaseModel):
    user: dict
    redirect_path: str | None = None


class UpdateProfileRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)


def _serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


@router.post("/magic-link")
def send_magic_link(payload: MagicLinkRequest, request: Request, db: Session = Depends(get_db)) -> dict:
    issue_magic_link(payload.email, request, db, payload.redirect_path)
    return {"status": "sent"}


@router.get("/callback")
def magic_link_callback(token: str, request: Request, response: Response, db: Session = Depends(get_db)) -> SessionPayload:
    user, redirect_path = finalize_login(request, response, token, db)
    return SessionPayload(user=_serialize_user(user), redirect_path=redirect_path)


@router.get("/me")
def get_current_user(context: AuthContext = Depends(require_auth)) -> SessionPayload:
    return SessionPayload(user=_serialize_user(context.user), redirect_path=None)


@router.patch("/me")
def update_current_user(
    payload: UpdateProfileRequest,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> SessionPayload:
    user = db.merge(context.user)
    user.full_name = payload.full_name.strip()
    db.commit()
    db.refresh(user)
    return SessionPayload(user=_serialize_user(user), redirect_path=None)


@router.post("/logout")
def logout_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> dict:
    raw_token = request.cookies.get(settings.cookie_name)
    if raw_token:
        AuthService(db).revoke_session(raw_token)
    clear_session_cookie(response)
    return {"status": "logged_out"}
