import os, hmac, hashlib
from typing import Tuple

ITERATIONS = 100_000
SCHEME = "pbkdf2_sha256"


def hash_password(password: str, salt: str = None, iterations: int = ITERATIONS) -> Tuple[str, str]:
    if not salt:
        salt = os.urandom(16).hex()
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), bytes.fromhex(salt), iterations)
    return dk.hex(), salt


def encode_password(password: str) -> str:
    """Single-string form stored in users.json: scheme$iterations$salt$hash."""
    digest, salt = hash_password(password)
    return f"{SCHEME}${ITERATIONS}${salt}${digest}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        scheme, iterations, salt, stored_hash = encoded.split('$', 3)
        iterations = int(iterations)
    except (AttributeError, ValueError):
        return False
    if scheme != SCHEME:
        return False
    calc, _ = hash_password(password, salt, iterations)
    return hmac.compare_digest(calc, stored_hash)
