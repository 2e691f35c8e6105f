#!/usr/bin/env python
"""Utility to mint a local session cookie for manual testing."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from docchat.config import settings
from docchat.db.session import SessionLocal
from docchat.services.auth import AuthService


def create_session(email: str) -> str:
    with SessionLocal() as db:
        service = AuthService(db)
        user = service.get_or_create_user(email)
        raw_token = service.start_session(user, user_agent="scripts/create_session.py")

        print("User:", user.email)
        print("Session lifetime (hours):", settings.session_ttl_hours)
        print("\nPaste this cookie into your browser's dev tools:")
        print(f"{settings.cookie_name}={raw_token}")
        return raw_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a session cookie for local testing")
    parser.add_argument("email", help="User email to authenticate as")
    args = parser.parse_args()

    create_session(args.email)


if __name__ == "__main__":
    main()
