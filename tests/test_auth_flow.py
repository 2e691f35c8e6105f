from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie

import boto3
import pytest

from docchat.config import settings
from docchat.db.session import SessionLocal
from docchat.models import LoginToken, User, UserSession
from docchat.services import email as email_service
from docchat.services.auth import AuthError, AuthService
from docchat.services.email import ConsoleEmailClient, EmailMessage, SesEmailClient


@pytest.fixture()
def outbox(monkeypatch) -> list[EmailMessage]:
    sent: list[EmailMessage] = []

    def fake_send(self, message: EmailMessage) -> None:  # type: ignore[override]
        sent.append(message)

    monkeypatch.setattr(ConsoleEmailClient, "send", fake_send)
    return sent


def _token_from(message: EmailMessage) -> str:
    match = re.search(r"token=([A-Za-z0-9_.\-]+)", message.text_body)
    assert match, message.text_body
    return match.group(1)


def test_magic_link_request_endpoint(client, monkeypatch):
    called: dict[str, str] = {}

    def fake_request_magic_link(self, email: str, **kwargs) -> str:  # type: ignore[override]
        called["email"] = email
        called["redirect"] = kwargs.get("redirect_path")
        return "https://app.example.com/auth/callback?token=fake"

    monkeypatch.setattr(AuthService, "request_magic_link", fake_request_magic_link)

    response = client.post(
        "/auth/magic-link",
        json={"email": "owner@example.com", "redirect_path": "/documents"},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "sent"}
    assert called == {"email": "owner@example.com", "redirect": "/documents"}


def test_magic_link_rejects_invalid_email(client):
    response = client.post("/auth/magic-link", json={"email": "not-an-email"})
    assert response.status_code == 422


def test_magic_link_callback_and_me_endpoint(client, outbox):
    response = client.post("/auth/magic-link", json={"email": "Reader@Example.com"})
    assert response.status_code == 200
    assert len(outbox) == 1
    assert outbox[0].to == "reader@example.com"

    try:
        callback = client.get(f"/auth/callback?token={_token_from(outbox[0])}")
        assert callback.status_code == 200
        payload = callback.json()
        assert payload["user"]["email"] == "reader@example.com"
        assert payload["redirect_path"] == "/dashboard"
        assert settings.cookie_name in client.cookies

        me_response = client.get("/auth/me")
        assert me_response.status_code == 200
        assert me_response.json()["user"]["id"] == payload["user"]["id"]

        patch_response = client.patch("/auth/me", json={"full_name": "Ada Reader"})
        assert patch_response.status_code == 200
        assert patch_response.json()["user"]["full_name"] == "Ada Reader"
    finally:
        client.cookies.clear()

    with SessionLocal() as session:
        token = session.query(LoginToken).filter(LoginToken.email == "reader@example.com").one()
        assert token.consumed_at is not None
        user = session.query(User).filter(User.email == "reader@example.com").one()
        assert user.last_login_at is not None


def test_magic_link_cannot_be_reused(client, outbox):
    client.post("/auth/magic-link", json={"email": "once@example.com"})
    token = _token_from(outbox[0])

    try:
        first = client.get(f"/auth/callback?token={token}")
        assert first.status_code == 200
    finally:
        client.cookies.clear()

    second = client.get(f"/auth/callback?token={token}")
    assert second.status_code == 400
    assert second.json()["detail"] == "Login token not found or already used"


def test_callback_rejects_tampered_token(client):
    response = client.get("/auth/callback?token=garbage.token.value")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid login token"


def test_redeem_rejects_expired_login_token(outbox):
    with SessionLocal() as session:
        service = AuthService(session)
        service.request_magic_link("late@example.com")
        session.query(LoginToken).update(
            {"expires_at": datetime.now(timezone.utc) - timedelta(minutes=1)}
        )
        session.commit()

        with pytest.raises(AuthError):
            service.redeem_magic_link(_token_from(outbox[0]))


def test_logout_revokes_session(client):
    token = "logout-session-token"
    with SessionLocal() as session:
        service = AuthService(session)
        user = service.get_or_create_user("logout@example.com")
        session.add(
            UserSession(
                user_id=user.id,
                session_token_hash=AuthService.hash_token(token),
                expires_at=datetime.now(timezone.utc) + timedelta(hours=4),
            )
        )
        session.commit()

    response = client.post(
        "/auth/logout",
        cookies={settings.cookie_name: token},
    )
    assert response.status_code == 200
    assert response.json() == {"status": "logged_out"}
    # Starlette's TestClient keeps the original cookie jar, so assert via response metadata.
    cookies = SimpleCookie()
    cookies.load(response.headers.get("set-cookie", ""))
    morsel = cookies.get(settings.cookie_name)
    assert morsel is not None
    assert morsel.value == ""
    assert morsel["max-age"] == "0"

    with SessionLocal() as session:
        persisted = (
            session.query(UserSession)
            .filter(UserSession.session_token_hash == AuthService.hash_token(token))
            .one()
        )
        assert persisted.revoked_at is not None
        assert AuthService(session).session_from_token(token) is None


def test_email_backend_selection(monkeypatch):
    monkeypatch.setattr(email_service.settings, "email_backend", "console")
    assert isinstance(email_service.get_email_client(), ConsoleEmailClient)


def test_ses_client_sends_via_boto3(monkeypatch):
    from moto import mock_aws

    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")

    with mock_aws():
        ses = boto3.client("ses", region_name=settings.aws.region)
        ses.verify_email_identity(EmailAddress=settings.email_from)

        SesEmailClient().send(
            EmailMessage(to="reader@example.com", subject="Sign in", text_body="link")
        )

        quota = ses.get_send_quota()
        assert int(quota["SentLast24Hours"]) == 1
