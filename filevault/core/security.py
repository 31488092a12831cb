import secrets

from werkzeug.security import check_password_hash, generate_password_hash


def create_random_id(length: int) -> str:
    """Random hex string of exactly ``length`` characters."""
    return secrets.token_hex((length + 1) // 2)[:length]


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)
