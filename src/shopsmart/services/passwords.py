"""One-way password hashing (bcrypt)."""

import bcrypt

SALT_ROUNDS = 10  # typically a value between 10 and 12


def hash_password(password: str, rounds: int = SALT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, digest: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), digest.encode())
    except ValueError:
        # not a bcrypt digest
        return False
