"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.domain.entities import CurrentUser
from src.domain.enums import UserType
from src.domain.errors import AuthenticationError, AuthorizationError
from src.services.registry import ServiceRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceRegistry = Depends(get_services),
) -> CurrentUser:
    """Resolve the bearer token to a user; 401 when missing or invalid."""
    token = credentials.credentials if credentials else None
    user = await services.credentials.resolve_current_user(token)
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user


def _require(user_type: UserType):
    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.user_type != user_type:
            raise AuthorizationError(
                f"Only {user_type.value.lower()} accounts can do this",
                actor_id=user.id,
            )
        return user

    return dependency


require_driver = _require(UserType.DRIVER)
require_passenger = _require(UserType.PASSENGER)
