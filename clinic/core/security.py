from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from clinic.core.config import settings

ROLES = ("admin", "doctor", "patient")


@dataclass(frozen=True)
class Identity:
    """Verified caller: user id and role taken from the access token."""

    user_id: int
    role: str


def create_access_token(subject: str | int, role: str) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {"sub": str(subject), "role": role, "exp": expire, "type": "access"}
    if settings.token_issuer:
        to_encode["iss"] = settings.token_issuer
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Identity | None:
    options = {}
    if settings.token_issuer:
        options["issuer"] = settings.token_issuer
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm], **options
        )
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or role not in ROLES:
        return None
    try:
        return Identity(user_id=int(sub), role=role)
    except ValueError:
        return None
