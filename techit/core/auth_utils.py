from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt

from techit.core.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_KEY

BCRYPT_ROUNDS = 10


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_token(user: dict, expire_minutes: int = JWT_EXPIRE_MINUTES) -> str:
    """
    Signs the claims the routes authorize on: the user id and the admin flag.
    """
    claims = {"_id": str(user["_id"]), "isAdmin": bool(user.get("isAdmin", False))}
    if expire_minutes:
        claims["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    return jwt.encode(claims, JWT_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, JWT_KEY, algorithms=[JWT_ALGORITHM])
