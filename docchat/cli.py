from __future__ import annotations

import uuid

import typer

from .config import settings
from .db.session import SessionLocal
from .models import User
from .services.auth import AuthService
from .services.chat import ChatService
from .services.documents import get_owned_document

app = typer.Typer(help="DocChat administrative CLI")


def _find_user(db, email: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).one_or_none()
    if user is None:
        typer.echo(f"No user with email {email}", err=True)
        raise typer.Exit(code=1)
    return user


@app.command()
def create_user(
    email: str = typer.Argument(..., help="User email"),
    full_name: str = typer.Option("", "--full-name", "-f", help="Optional full name"),
    with_session: bool = typer.Option(False, "--with-session", help="Also mint a login session cookie"),
) -> None:
    """Create a user (or reuse the existing one)."""
    with SessionLocal() as db:
        auth = AuthService(db)
        user = auth.get_or_create_user(email)
        if full_name:
            user.full_name = full_name
        db.commit()
        typer.echo(f"User {user.email} ({user.id})")

        if with_session:
            token = auth.start_session(user)
            typer.echo(f"{settings.cookie_name}={token}")


@app.command()
def send_magic_link(email: str = typer.Argument(...)) -> None:
    """Send a sign-in magic link to an email address."""
    with SessionLocal() as db:
        AuthService(db).request_magic_link(email)
        typer.echo(f"Magic link sent to {email}. Check {settings.app_url} callback in inbox")


@app.command()
def show_transcript(
    document_id: str = typer.Argument(..., help="Document id"),
    email: str = typer.Argument(..., help="Owner email"),
) -> None:
    """Print the latest chat session for a document."""
    try:
        document_uuid = uuid.UUID(document_id)
    except ValueError:
        typer.echo("Invalid document id", err=True)
        raise typer.Exit(code=2)

    with SessionLocal() as db:
        user = _find_user(db, email)
        document = get_owned_document(db, user.id, document_uuid)
        if document is None:
            typer.echo("Document not found", err=True)
            raise typer.Exit(code=1)

        service = ChatService(db, user)
        session = service.latest_session(document)
        typer.echo(f"# {document.title}")
        if session is None:
            typer.echo("(no conversation yet)")
            return
        for message in service.list_messages(session):
            typer.echo(f"[{message.role.value}] {message.content}")


if __name__ == "__main__":
    app()
