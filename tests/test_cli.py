from __future__ import annotations

from typer.testing import CliRunner

from docchat.cli import app
from docchat.config import settings
from docchat.db.session import SessionLocal
from docchat.models import ChatMessage, ChatMessageRole, ChatSession, Document, User
from docchat.services.auth import AuthService

runner = CliRunner()


def test_create_user_with_session():
    result = runner.invoke(app, ["create-user", "Cli@Example.com", "--full-name", "Cli User", "--with-session"])
    assert result.exit_code == 0, result.output
    assert "cli@example.com" in result.output

    token_line = [line for line in result.output.splitlines() if line.startswith(f"{settings.cookie_name}=")][0]
    token = token_line.split("=", 1)[1]

    with SessionLocal() as session:
        user = session.query(User).filter(User.email == "cli@example.com").one()
        assert user.full_name == "Cli User"
        row = AuthService(session).session_from_token(token)
        assert row is not None
        assert row[1].id == user.id


def test_show_transcript_prints_messages_in_order():
    with SessionLocal() as session:
        user = AuthService(session).get_or_create_user("reader@example.com")
        document = Document(user_id=user.id, title="manual.txt", content="text", file_type="text/plain", file_size=4)
        session.add(document)
        session.flush()
        chat = ChatSession(user_id=user.id, document_id=document.id)
        session.add(chat)
        session.flush()
        session.add(ChatMessage(session_id=chat.id, role=ChatMessageRole.USER, content="question?"))
        session.flush()
        session.add(ChatMessage(session_id=chat.id, role=ChatMessageRole.ASSISTANT, content="answer."))
        session.commit()
        document_id = str(document.id)

    result = runner.invoke(app, ["show-transcript", document_id, "reader@example.com"])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["# manual.txt", "[user] question?", "[assistant] answer."]


def test_show_transcript_unknown_user():
    result = runner.invoke(app, ["show-transcript", "00000000-0000-0000-0000-000000000000", "nobody@example.com"])
    assert result.exit_code == 1
