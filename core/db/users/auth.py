"""
Password hashing and verification, email shape checks, and the account password policy.
"""
from __future__ import annotations

import bcrypt
from email_validator import EmailNotValidError, validate_email
from password_strength import PasswordPolicy

MAX_PASSWORD_LENGTH = 64
MAX_EMAIL_LENGTH = 254

password_policy = PasswordPolicy.from_names(length=8, numbers=1)


def password_problems(raw_password: str) -> list[str]:
    """Return human-readable policy failures (empty list when acceptable)."""
    pw = raw_password or ""
    problems: list[str] = []
    if any(ch.isspace() for ch in pw):
        problems.append("no whitespace allowed")
    if len(pw) > MAX_PASSWORD_LENGTH:
        problems.append(f"at most {MAX_PASSWORD_LENGTH} characters")
    for failed in password_policy.test(pw):
        problems.append(str(failed))
    return problems


def is_valid_email(email: str) -> bool:
    email = (email or "").strip()
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def hash_password(raw_password: str) -> str:
    return bcrypt.hashpw(raw_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    if not raw_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(raw_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the row (e.g. a placeholder); never a match.
        return False


__all__ = ["MAX_PASSWORD_LENGTH", "MAX_EMAIL_LENGTH", "is_valid_email", "password_problems", "hash_password", "verify_password"]
