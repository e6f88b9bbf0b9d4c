import inspect
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from clinic.api.deps import require_role
from clinic.core.config import settings
from clinic.core.db import to_async_database_url
from clinic.core.errors import AlreadyBooked, SpecializationRequired
from clinic.core.security import Identity, create_access_token, decode_access_token


def _token(**claims) -> str:
    payload = {
        "sub": "7",
        "role": "doctor",
        "type": "access",
        "iss": settings.token_issuer,
        "exp": datetime.now(UTC) + timedelta(minutes=5),
    }
    payload.update(claims)
    return jwt.encode(
        {k: v for k, v in payload.items() if v is not None},
        settings.secret_key,
        algorithm=settings.algorithm,
    )


def test_access_token_round_trip() -> None:
    assert decode_access_token(create_access_token(42, "patient")) == Identity(42, "patient")


def test_expired_token_is_rejected() -> None:
    assert decode_access_token(_token(exp=datetime.now(UTC) - timedelta(minutes=1))) is None


def test_token_signed_with_another_key_is_rejected() -> None:
    token = jwt.encode(
        {"sub": "7", "role": "doctor", "type": "access", "iss": settings.token_issuer},
        "some-other-key",
        algorithm=settings.algorithm,
    )

    assert decode_access_token(token) is None


def test_refresh_tokens_and_unknown_roles_are_rejected() -> None:
    assert decode_access_token(_token(type="refresh")) is None
    assert decode_access_token(_token(role="superuser")) is None
    assert decode_access_token(_token(sub="not-a-number")) is None


def test_wrong_issuer_is_rejected() -> None:
    assert decode_access_token(_token(iss="someone-else")) is None


def test_postgres_url_is_rewritten_for_asyncpg() -> None:
    url = to_async_database_url("postgresql://u:p@db.example.com/clinic?sslmode=require&channel_binding=require")

    assert url == "postgresql+asyncpg://u:p@db.example.com/clinic"


def test_sqlite_url_passes_through() -> None:
    assert to_async_database_url("sqlite+aiosqlite:///./x.db") == "sqlite+aiosqlite:///./x.db"


def test_errors_carry_status_and_default_detail() -> None:
    err = SpecializationRequired()

    assert err.status_code == 400
    assert err.code == "specialization_required"
    assert err.detail == "Doctor has zero or several specializations; provide specializationId"
    assert AlreadyBooked("taken").detail == "taken"
    assert AlreadyBooked.status_code == 409


async def test_require_role_is_an_awaitable_dependency() -> None:
    doctor_only = require_role("doctor")

    assert inspect.iscoroutinefunction(doctor_only)
    assert await doctor_only(Identity(7, "doctor")) == Identity(7, "doctor")
    with pytest.raises(HTTPException) as exc_info:
        await doctor_only(Identity(8, "patient"))
    assert exc_info.value.status_code == 403
