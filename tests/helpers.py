from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from docchat.db.session import SessionLocal
from docchat.models import UserSession
from docchat.services.auth import AuthService


def make_user_session(email: str) -> dict[str, str]:
    token = secrets.token_urlsafe(32)
    with SessionLocal() as session:
        user = AuthService(session).get_or_create_user(email)
        session.add(
            UserSession(
                user_id=user.id,
                session_token_hash=AuthService.hash_token(token),
                expires_at=datetime.now(timezone.utc) + timedelta(hours=4),
            )
        )
        session.commit()
        user_id = str(user.id)
    return {"user_id": user_id, "token": token}


def make_pdf(pages: list[str]) -> bytes:
    """Build a small PDF with one line of Helvetica text per page."""
    objects: list[bytes] = []
    page_count = len(pages)
    font_id = 3 + 2 * page_count
    kids = " ".join(f"{3 + 2 * i} 0 R" for i in range(page_count))

    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode())
    for index, text in enumerate(pages):
        content_id = 4 + 2 * index
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents {content_id} 0 R "
                f"/Resources << /Font << /F1 {font_id} 0 R >> >> >>"
            ).encode()
        )
        stream = f"BT /F1 18 Tf 72 720 Td ({text}) Tj ET".encode()
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)
