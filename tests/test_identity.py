"""Tests for registration, login and token resolution."""

from __future__ import annotations

import threading
from datetime import timedelta

import jwt
import pytest

from src.domain.clock import utcnow
from src.domain.enums import UserType
from src.domain.errors import AuthenticationError, ValidationError
from src.services.identity import BcryptPasswordHasher, CredentialStore
from tests.conftest import PlainTextHasher

SECRET = "test-secret"


@pytest.fixture
def credentials(session_factory) -> CredentialStore:
    return CredentialStore(session_factory, PlainTextHasher(), secret=SECRET)


class TestBcryptPasswordHasher:
    def test_hash_and_verify(self):
        hasher = BcryptPasswordHasher()
        hashed = hasher.hash_password("hunter22")
        assert hashed != "hunter22"
        assert hasher.verify_password("hunter22", hashed)
        assert not hasher.verify_password("hunter23", hashed)


@pytest.mark.asyncio
async def test_register_normalises_email(credentials):
    user = await credentials.register_user(
        " Ana ", "Ana@Example.COM ", "secret1", UserType.PASSENGER
    )
    assert user.name == "Ana"
    assert user.email == "ana@example.com"
    assert user.password_hash != "secret1"


@pytest.mark.asyncio
async def test_register_duplicate_email_is_refused(credentials):
    await credentials.register_user("Ana", "ana@example.com", "secret1", UserType.PASSENGER)
    with pytest.raises(ValidationError, match="already exists"):
        await credentials.register_user(
            "Other", "ANA@example.com", "secret2", UserType.DRIVER
        )


@pytest.mark.asyncio
async def test_register_requires_fields_and_password_length(credentials):
    with pytest.raises(ValidationError, match="All fields are required"):
        await credentials.register_user("", "a@example.com", "secret1", UserType.DRIVER)
    with pytest.raises(ValidationError, match="at least 6"):
        await credentials.register_user("Jo", "jo@example.com", "short", UserType.DRIVER)


@pytest.mark.asyncio
async def test_authenticate_returns_token_for_user(credentials):
    user = await credentials.register_user(
        "Jose", "jose@example.com", "secret1", UserType.DRIVER
    )

    logged_in, token = await credentials.authenticate("JOSE@example.com", "secret1")

    assert logged_in.id == user.id
    current = await credentials.resolve_current_user(token)
    assert current.id == user.id
    assert current.user_type == UserType.DRIVER


@pytest.mark.asyncio
async def test_authenticate_wrong_password(credentials):
    await credentials.register_user("Jose", "jose@example.com", "secret1", UserType.DRIVER)
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        await credentials.authenticate("jose@example.com", "wrong-pass")
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        await credentials.authenticate("nobody@example.com", "secret1")


@pytest.mark.asyncio
async def test_authenticate_checks_account_type(credentials):
    await credentials.register_user("Jose", "jose@example.com", "secret1", UserType.DRIVER)
    with pytest.raises(AuthenticationError, match="not registered as a passenger"):
        await credentials.authenticate(
            "jose@example.com", "secret1", expected_type=UserType.PASSENGER
        )


@pytest.mark.asyncio
async def test_resolve_rejects_bad_tokens(credentials):
    assert await credentials.resolve_current_user(None) is None
    assert await credentials.resolve_current_user("not-a-jwt") is None

    forged = jwt.encode({"sub": "someone"}, "other-secret", algorithm="HS256")
    assert await credentials.resolve_current_user(forged) is None


@pytest.mark.asyncio
async def test_resolve_rejects_expired_token(credentials):
    user = await credentials.register_user(
        "Ana", "ana@example.com", "secret1", UserType.PASSENGER
    )
    expired = jwt.encode(
        {"sub": user.id, "exp": utcnow() - timedelta(minutes=1)},
        SECRET,
        algorithm="HS256",
    )
    assert await credentials.resolve_current_user(expired) is None


@pytest.mark.asyncio
async def test_resolve_token_of_deleted_user(credentials):
    token = credentials.issue_token("ghost", UserType.PASSENGER)
    assert await credentials.resolve_current_user(token) is None


@pytest.mark.asyncio
async def test_register_rejects_password_over_72_bytes(credentials):
    with pytest.raises(ValidationError, match="longer than 72 bytes") as exc:
        await credentials.register_user("Ana", "ana@example.com", "p" * 80, UserType.PASSENGER)
    assert exc.value.field == "password"

    # multi-byte characters count by encoded length
    with pytest.raises(ValidationError, match="longer than 72 bytes"):
        await credentials.register_user("Ana", "ana@example.com", "é" * 37, UserType.PASSENGER)


@pytest.mark.asyncio
async def test_login_with_overlong_password_is_bad_credentials(credentials):
    await credentials.register_user("Ana", "ana@example.com", "secret1", UserType.PASSENGER)
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        await credentials.authenticate("ana@example.com", "p" * 80)


@pytest.mark.asyncio
async def test_bcrypt_store_handles_72_byte_boundary(session_factory):
    credentials = CredentialStore(
        session_factory, BcryptPasswordHasher(), secret=SECRET
    )
    password = "p" * 72
    user = await credentials.register_user(
        "Ana", "ana@example.com", password, UserType.PASSENGER
    )
    logged_in, _ = await credentials.authenticate("ana@example.com", password)
    assert logged_in.id == user.id


@pytest.mark.asyncio
async def test_hashing_runs_off_the_event_loop(session_factory):
    loop_thread = threading.get_ident()
    seen = []

    class RecordingHasher(PlainTextHasher):
        def hash_password(self, plain_password):
            seen.append(threading.get_ident())
            return super().hash_password(plain_password)

        def verify_password(self, plain_password, hashed_password):
            seen.append(threading.get_ident())
            return super().verify_password(plain_password, hashed_password)

    credentials = CredentialStore(session_factory, RecordingHasher(), secret=SECRET)
    await credentials.register_user("Ana", "ana@example.com", "secret1", UserType.PASSENGER)
    await credentials.authenticate("ana@example.com", "secret1")

    assert len(seen) == 2
    assert loop_thread not in seen
