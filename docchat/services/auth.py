from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import LoginToken, User, UserSession
from .email import EmailMessage, get_email_client

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


class AuthService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.serializer = URLSafeTimedSerializer(settings.magic_link_secret, salt="magic-link")
        self.email_client = get_email_client()

    # --- Magic link flow -------------------------------------------------
    def request_magic_link(
        self,
        email: str,
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        redirect_path: Optional[str] = None,
    ) -> str:
        normalized_email = email.strip().lower()
        if not normalized_email:
            raise AuthError("Email required")

        user = self.get_or_create_user(normalized_email)

        raw_token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.magic_link_expiry_minutes)

        login_token = LoginToken(
            user_id=user.id,
            token_hash=self.hash_token(raw_token),
            email=normalized_email,
            purpose="login",
            expires_at=expires_at,
        )
        self.db.add(login_token)
        self.db.flush()

        signed_token = self.serializer.dumps(
            {
                "token": raw_token,
                "user_id": str(user.id),
                "login_token_id": str(login_token.id),
                "redirect": redirect_path or "/dashboard",
            }
        )

        magic_link = f"{settings.app_url}/auth/callback?token={signed_token}"
        text_body = (
            "Your DocChat sign-in link is ready.\n\n"
            f"Click to sign in: {magic_link}\n\n"
            "This link expires in "
            f"{settings.magic_link_expiry_minutes} minutes. If you did not request it, you can ignore this message."
        )

        try:
            self.email_client.send(
                EmailMessage(
                    to=normalized_email,
                    subject="Your DocChat sign-in link",
                    text_body=text_body,
                )
            )
        except Exception as exc:  # pragma: no cover - email errors
            self.db.rollback()
            logger.error("Failed to send magic link: email=%s error=%s", normalized_email, exc)
            raise AuthError("Could not send magic link") from exc

        logger.info(
            "magic_link_issued user_id=%s request_ip=%s user_agent=%s",
            user.id,
            request_ip,
            user_agent,
        )

        self.db.commit()
        return magic_link

    def redeem_magic_link(
        self,
        signed_token: str,
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[User, str, str]:
        try:
            payload = self.serializer.loads(
                signed_token,
                max_age=settings.magic_link_expiry_minutes * 60,
            )
        except SignatureExpired as exc:
            raise AuthError("Magic link expired") from exc
        except BadSignature as exc:
            raise AuthError("Invalid login token") from exc

        try:
            user_id = uuid.UUID(payload["user_id"])
            login_token_id = uuid.UUID(payload["login_token_id"])
            raw_token = payload["token"]
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthError("Invalid login token") from exc
        redirect_path = payload.get("redirect", "/dashboard")

        login_token = (
            self.db.query(LoginToken)
            .filter(
                LoginToken.id == login_token_id,
                LoginToken.user_id == user_id,
                LoginToken.token_hash == self.hash_token(raw_token),
                LoginToken.consumed_at.is_(None),
                LoginToken.expires_at > datetime.now(timezone.utc),
            )
            .one_or_none()
        )
        if not login_token:
            raise AuthError("Login token not found or already used")

        login_token.consumed_at = datetime.now(timezone.utc)

        user = self.db.query(User).filter(User.id == user_id).one()
        if not user.is_active:
            raise AuthError("Account disabled")

        session_token = self.start_session(user, request_ip=request_ip, user_agent=user_agent, commit=False)
        user.last_login_at = datetime.now(timezone.utc)
        self.db.add(login_token)
        self.db.commit()

        logger.info("user_login user_id=%s login_token_id=%s", user.id, login_token.id)

        return user, session_token, redirect_path

    # --- Session flow ----------------------------------------------------
    def start_session(
        self,
        user: User,
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        commit: bool = True,
    ) -> str:
        session_token = secrets.token_urlsafe(32)
        self.db.add(
            UserSession(
                user_id=user.id,
                session_token_hash=self.hash_token(session_token),
                ip_address=request_ip,
                user_agent=user_agent,
                expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.session_ttl_hours),
            )
        )
        if commit:
            self.db.commit()
        return session_token

    def session_from_token(self, raw_token: str) -> Optional[tuple[UserSession, User]]:
        if not raw_token:
            return None
        hashed = self.hash_token(raw_token)
        now = datetime.now(timezone.utc)
        row = (
            self.db.query(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .filter(
                UserSession.session_token_hash == hashed,
                UserSession.revoked_at.is_(None),
                UserSession.expires_at > now,
                User.is_active.is_(True),
            )
            .one_or_none()
        )
        return row

    def revoke_session(self, raw_token: str) -> None:
        hashed = self.hash_token(raw_token)
        now = datetime.now(timezone.utc)
        updated = (
            self.db.query(UserSession)
            .filter(UserSession.session_token_hash == hashed, UserSession.revoked_at.is_(None))
            .update({"revoked_at": now})
        )
        if updated:
            logger.info("session_revoked hash=%s", hashed[:8])
        self.db.commit()

    # --- Helpers ---------------------------------------------------------
    @staticmethod
    def hash_token(value: str) -> str:
        return hashlib.sha256(value.encode("utf-8")).hexdigest()

    def get_or_create_user(self, email: str, full_name: Optional[str] = None) -> User:
        normalized = email.strip().lower()
        user = (
            self.db.query(User)
            .filter(func.lower(User.email) == normalized)
            .one_or_none()
        )
        if user:
            return user

        user = User(email=normalized, full_name=full_name)
        self.db.add(user)
        self.db.flush()
        logger.info("user_created user_id=%s", user.id)
        return user
