from __future__ import annotations

import pathlib

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from docchat.db.session import engine

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]


def _users_indexes(bind) -> dict[str, tuple[list[str], bool]]:
    return {
        index["name"]: (index["column_names"], bool(index["unique"]))
        for index in inspect(bind).get_indexes("users")
    }


def test_initial_migration_matches_models(tmp_path, monkeypatch):
    """Upgrading a fresh database yields the same users indexes as the ORM."""
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    config = Config()
    config.set_main_option("script_location", str(ROOT_DIR / "alembic"))

    command.upgrade(config, "head")

    migrated = create_engine(url)
    try:
        tables = set(inspect(migrated).get_table_names())
        assert {"users", "documents", "chat_sessions", "chat_messages"} <= tables
        assert _users_indexes(migrated)["ix_users_email"] == (["email"], True)
        assert _users_indexes(migrated)["ix_users_email"] == _users_indexes(engine)["ix_users_email"]
    finally:
        migrated.dispose()
