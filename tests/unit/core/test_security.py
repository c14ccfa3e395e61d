from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from app.core.config import get_settings
from app.core.exceptions import AccessDeniedError
from app.core.security import (
    CurrentUser,
    create_access_token,
    ensure_installation_access,
    get_current_user,
    require_global_admin,
)
from tests.fixtures.bol_fixtures import create_installation, create_user


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_valid_token_resolves_user(db_session):
    user = await create_user(db_session, email="ops@example.com")

    current = await get_current_user(bearer(create_access_token(user.id)), db_session)

    assert current == CurrentUser(id=user.id, email="ops@example.com", is_global_admin=False)


@pytest.mark.asyncio
async def test_sub_claim_is_accepted(db_session):
    user = await create_user(db_session)
    settings = get_settings()
    token = jwt.encode({"sub": str(user.id)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    current = await get_current_user(bearer(token), db_session)

    assert current.id == user.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token",
    [
        None,
        "not-a-jwt",
        jwt.encode({"userId": 1}, "some-other-key", algorithm="HS256"),
    ],
)
async def test_invalid_tokens_are_rejected(db_session, token):
    credentials = bearer(token) if token else None

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(credentials, db_session)

    assert exc_info.value.status_code == 401
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.asyncio
async def test_expired_token_is_rejected(db_session):
    user = await create_user(db_session)
    token = create_access_token(user.id, expires_delta=timedelta(seconds=-10))

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(bearer(token), db_session)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_user_is_rejected(db_session):
    with pytest.raises(HTTPException):
        await get_current_user(bearer(create_access_token(999)), db_session)


@pytest.mark.asyncio
async def test_require_global_admin():
    admin = CurrentUser(id=1, email="admin@example.com", is_global_admin=True)
    assert await require_global_admin(admin) is admin

    with pytest.raises(HTTPException) as exc_info:
        await require_global_admin(CurrentUser(id=2, email="user@example.com"))
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_installation_access(db_session):
    await create_installation(db_session, installation_id=1)
    await create_installation(db_session, installation_id=2)
    user = await create_user(db_session, installation_ids=[1])
    current = CurrentUser(id=user.id, email=user.email)

    await ensure_installation_access(db_session, current, 1)
    with pytest.raises(AccessDeniedError):
        await ensure_installation_access(db_session, current, 2)

    admin = CurrentUser(id=99, email="admin@example.com", is_global_admin=True)
    await ensure_installation_access(db_session, admin, 2)
