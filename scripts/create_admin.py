"""
Promote an existing account to admin.

Usage:
  python scripts/create_admin.py user@naisata.com

Accounts register as employees; the first admin has to be granted from the
server. Running it twice is harmless.
"""

import sys
from typing import Optional

from sqlalchemy.orm import sessionmaker

from fieldops.db import Base, engine, session_scope
from fieldops.models.models import User
from fieldops.services.accounts import normalize_email


def promote(email: str, factory: Optional[sessionmaker] = None) -> str:
    """Returns promoted, already_admin or missing."""
    with session_scope(factory) as session:
        user = session.query(User).filter(User.email == normalize_email(email)).first()
        if user is None:
            return "missing"
        if user.role == "admin":
            return "already_admin"
        user.role = "admin"
        return "promoted"


def main(argv: list) -> int:
    if len(argv) != 2:
        print("usage: python scripts/create_admin.py <email>")
        return 2
    email = normalize_email(argv[1])

    Base.metadata.create_all(bind=engine)
    outcome = promote(email)
    if outcome == "missing":
        print(f"No account registered with {email}")
        return 1
    if outcome == "already_admin":
        print(f"{email} is already an admin")
    else:
        print(f"{email} promoted to admin")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
