from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fastapi import HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..config import settings
from ..db.session import SessionLocal
from ..models import User, UserSession
from ..services.auth import AuthError, AuthService


@dataclass
class AuthContext:
    user: User
    session: UserSession


def require_auth(request: Request) -> AuthContext:
    raw_token = request.cookies.get(settings.cookie_name)
    with SessionLocal() as db:
        service = AuthService(db)
        row = service.session_from_token(raw_token or "")
        if not row:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

        session, user = row
        request.state.user_id = str(user.id)
        # detach objects before session closes
        db.expunge_all()
        return AuthContext(user=user, session=session)


def _client_details(request: Request) -> tuple[str | None, str | None]:
    return (request.client.host if request.client else None, request.headers.get("user-agent"))


def issue_magic_link(
    email: str,
    request: Request,
    db: Session,
    redirect_path: str | None = None,
) -> str:
    service = AuthService(db)
    request_ip, user_agent = _client_details(request)
    try:
        return service.request_magic_link(
            email=email,
            request_ip=request_ip,
            user_agent=user_agent,
            redirect_path=redirect_path,
        )
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def finalize_login(request: Request, response: Response, signed_token: str, db: Session) -> tuple[User, str]:
    service = AuthService(db)
    request_ip, user_agent = _client_details(request)
    try:
        user, session_token, redirect_path = service.redeem_magic_link(
            signed_token, request_ip=request_ip, user_agent=user_agent
        )
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    attach_session_cookie(response, session_token)
    return user, redirect_path


def attach_session_cookie(response: Response, raw_token: str) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=raw_token,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        domain=settings.cookie_domain,
        path="/",
        max_age=int(timedelta(hours=settings.session_ttl_hours).total_seconds()),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        domain=settings.cookie_domain,
        path="/",
    )
