import re

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

MIN_PASSWORD_LENGTH = 6

ph = PasswordHasher()


def password_problems(password: str) -> list[str]:
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"\d", password):
        problems.append("a number")
    if not re.search(r"[a-zA-Z]", password):
        problems.append("a letter")
    return problems


def check_password_rules(password: str) -> str:
    problems = password_problems(password)
    if problems:
        raise ValueError("Password must contain " + ", ".join(problems))
    return password


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False
