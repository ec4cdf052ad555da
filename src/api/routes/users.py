"""
User endpoints
==============

POST /api/v1/users/register -- create a driver or passenger account
POST /api/v1/users/login    -- exchange credentials for a bearer token
GET  /api/v1/users/me       -- the account behind the token
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_current_user, get_services
from src.api.middleware import limiter
from src.api.schemas import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from src.config import settings
from src.domain.entities import CurrentUser
from src.domain.errors import NotFoundError
from src.services.registry import ServiceRegistry

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/register",
    status_code=201,
    response_model=UserResponse,
    summary="Register",
)
@limiter.limit(settings.rate_limit)
async def register(
    request: Request,
    body: RegisterRequest,
    services: ServiceRegistry = Depends(get_services),
):
    return await services.credentials.register_user(
        body.name, body.email, body.password, body.user_type
    )


@router.post("/login", response_model=LoginResponse, summary="Log in")
@limiter.limit(settings.rate_limit)
async def login(
    request: Request,
    body: LoginRequest,
    services: ServiceRegistry = Depends(get_services),
):
    user, token = await services.credentials.authenticate(
        body.email, body.password, expected_type=body.user_type
    )
    return LoginResponse(user=UserResponse.model_validate(user), token=token)


@router.get("/me", response_model=UserResponse, summary="Current user")
@limiter.limit(settings.rate_limit)
async def me(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceRegistry = Depends(get_services),
):
    account = await services.credentials.get_user(user.id)
    if account is None:
        raise NotFoundError("User", user.id)
    return account
