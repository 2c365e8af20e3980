"""
Provision, update or deactivate a user account (there is no self-service signup).

Usage:
  python -m scripts.create_user user@example.com                 # prompts for a password
  python -m scripts.create_user user@example.com --password ...  # set/reset the password
  python -m scripts.create_user user@example.com --deactivate
  python -m scripts.create_user --list

Dashboard access additionally needs the address in ADMIN_EMAILS.
"""
from __future__ import annotations

import argparse
import getpass
import sys

from dotenv import load_dotenv

from core.config import is_admin_email
from core.database import (
    create_user,
    get_user_by_email,
    init_db,
    is_valid_email,
    password_problems,
    set_user_active,
    update_user_password,
)
from core.db.users import list_users


def _read_password(given: str | None) -> str:
    if given:
        return given
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        raise SystemExit("Passwords do not match.")
    return first


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("email", nargs="?")
    parser.add_argument("--password")
    parser.add_argument("--deactivate", action="store_true")
    parser.add_argument("--list", action="store_true", help="list accounts and exit")
    args = parser.parse_args(argv)

    load_dotenv(override=True)
    init_db()

    if args.list:
        for user in list_users():
            flags = []
            if not user.get("active"):
                flags.append("inactive")
            if is_admin_email(user.get("email")):
                flags.append("admin")
            print(f"{user['id']:>5}  {user['email']}  {' '.join(flags)}")
        return 0

    if not args.email:
        parser.error("email is required unless --list is given")

    email = args.email.strip().lower()
    if not is_valid_email(email):
        print(f"Not a valid email address: {email}", file=sys.stderr)
        return 2

    existing = get_user_by_email(email)

    if args.deactivate:
        if not existing:
            print(f"No such user: {email}", file=sys.stderr)
            return 1
        set_user_active(existing["id"], False)
        print(f"Deactivated {email}")
        return 0

    password = _read_password(args.password)
    problems = password_problems(password)
    if problems:
        print("Password rejected: " + "; ".join(problems), file=sys.stderr)
        return 2

    if existing:
        update_user_password(existing["id"], password)
        set_user_active(existing["id"], True)
        print(f"Updated password for {email}")
    else:
        user_id = create_user(email, password)
        print(f"Created user {email} (id {user_id})")
    if not is_admin_email(email):
        print("Note: not listed in ADMIN_EMAILS, so no dashboard access.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
