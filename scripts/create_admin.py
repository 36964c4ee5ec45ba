#!/usr/bin/env python3
"""Create the first admin account.

Students register themselves from the whitelist; admins are created here
or by another admin. Running it for an existing email promotes that
account to admin and reactivates it. No password is asked for then, the
account keeps its own.

Usage:
    python scripts/create_admin.py admin@example.org --first-name Ada --last-name Admin

For a new account the password is read interactively unless --password is given.
"""

import argparse
import getpass
import sys

from abibuch.database import SessionLocal
from abibuch.logging_config import setup_logging
from abibuch.services.auth_service import ensure_admin, find_user_by_email
from abibuch.startup import run_startup_migrations

MIN_PASSWORD_LENGTH = 8


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an Abibuch admin")
    parser.add_argument("email")
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    parser.add_argument("--password", help="Skip the interactive prompt")
    args = parser.parse_args(argv)

    setup_logging()
    run_startup_migrations()

    db = SessionLocal()
    try:
        password = None
        if not find_user_by_email(db, args.email):
            password = args.password or getpass.getpass("Passwort: ")
            if len(password) < MIN_PASSWORD_LENGTH:
                print(f"Das Passwort muss mindestens {MIN_PASSWORD_LENGTH} Zeichen lang sein.")
                return 1
        _, created = ensure_admin(db, args.email, password, args.first_name, args.last_name)
    finally:
        db.close()
    print(f"{'Created' if created else 'Promoted'} admin {args.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
