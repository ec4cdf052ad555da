"""
Credential store: registration, login and current-user resolution.

The booking engine only ever sees a resolved ``CurrentUser`` (id + user
type).  Password hashing sits behind ``PasswordHasher`` so the scheme can
be swapped; the default is bcrypt.  Session tokens are HS256 JWTs.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.clock import Clock, utcnow
from src.domain.entities import CurrentUser
from src.domain.enums import UserType
from src.domain.errors import AuthenticationError, ValidationError
from src.infrastructure.models import UserModel
from src.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt input limit
MAX_PASSWORD_BYTES = 72
BAD_CREDENTIALS = "Invalid email or password"


class PasswordHasher(ABC):
    @abstractmethod
    def hash_password(self, plain_password: str) -> str: ...

    @abstractmethod
    def verify_password(self, plain_password: str, hashed_password: str) -> bool: ...


class BcryptPasswordHasher(PasswordHasher):
    def hash_password(self, plain_password: str) -> str:
        hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt())
        return hashed.decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )


class CredentialStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: PasswordHasher,
        *,
        secret: str,
        algorithm: str = "HS256",
        ttl_seconds: int = 60 * 60 * 24 * 7,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.hasher = hasher
        self.secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def register_user(
        self, name: str, email: str, password: str, user_type: UserType
    ) -> UserModel:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name or not email or not password:
            raise ValidationError("All fields are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="password",
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes",
                field="password",
            )
        password_hash = await asyncio.to_thread(self.hasher.hash_password, password)

        async with self.session_factory() as session, session.begin():
            repo = UserRepository(session)
            if await repo.get_by_email(email):
                raise ValidationError(
                    "User with this email already exists", field="email"
                )
            user = await repo.create(
                UserModel(
                    name=name,
                    email=email,
                    password_hash=password_hash,
                    user_type=user_type,
                    created_at=self.clock(),
                )
            )
        logger.info("Registered %s %s", user.user_type.value, user.id)
        return user

    async def authenticate(
        self,
        email: str,
        password: str,
        expected_type: Optional[UserType] = None,
    ) -> tuple[UserModel, str]:
        """Check credentials; return the user and a fresh session token."""
        if not email or not password:
            raise AuthenticationError("Email and password are required")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise AuthenticationError(BAD_CREDENTIALS)

        async with self.session_factory() as session:
            user = await UserRepository(session).get_by_email(email.strip())
        if user is None or not await asyncio.to_thread(
            self.hasher.verify_password, password, user.password_hash
        ):
            raise AuthenticationError(BAD_CREDENTIALS)

        user_type = UserType(user.user_type)
        if expected_type is not None and user_type != expected_type:
            raise AuthenticationError(
                f"This account is not registered as a {expected_type.value.lower()}"
            )
        return user, self.issue_token(user.id, user_type)

    def issue_token(self, user_id: str, user_type: UserType) -> str:
        payload = {
            "sub": user_id,
            "user_type": user_type.value,
            "exp": self.clock() + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    async def resolve_current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        """Map a session token to the user it belongs to, or ``None``."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            return None
        user_id = payload.get("sub")
        if not user_id:
            return None

        async with self.session_factory() as session:
            user = await UserRepository(session).get_by_id(user_id)
        if user is None:
            return None
        return CurrentUser(id=user.id, user_type=UserType(user.user_type))

    async def get_user(self, user_id: str) -> Optional[UserModel]:
        async with self.session_factory() as session:
            return await UserRepository(session).get_by_id(user_id)
