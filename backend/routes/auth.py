#  Voice Tutor - Auth Routes
#
#  Registration, login, and current-user endpoints.
#
#  Depends on: container.py, services/auth.py, middleware/auth.py, rate_limit.py
#  Used by:    app.py

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, HTTPException

from backend.container import Container
from backend.exceptions import EmailInUseError, InvalidCredentialsError
from backend.middleware.auth import get_current_user
from backend.models.enums import OperationClass
from backend.models.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserEnvelope,
    UserOut,
)
from backend.rate_limit import RateLimit
from backend.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    status_code=201,
    dependencies=[Depends(RateLimit(OperationClass.AUTH))],
)
@inject
async def register(
    body: RegisterRequest,
    auth: AuthService = Depends(Provide[Container.auth]),
) -> AuthResponse:
    """Create an account and receive a session token."""
    try:
        result = await auth.register(body.email, body.password, body.display_name, body.age)
    except EmailInUseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AuthResponse(
        message="Account created successfully!",
        token=result["token"],
        user=UserOut(**result["user"]),
    )


@router.post("/login", dependencies=[Depends(RateLimit(OperationClass.AUTH))])
@inject
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(Provide[Container.auth]),
) -> AuthResponse:
    """Authenticate and receive a session token."""
    try:
        result = await auth.login(body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return AuthResponse(
        message="Login successful!",
        token=result["token"],
        user=UserOut(**result["user"]),
    )


@router.get("/me", dependencies=[Depends(RateLimit())])
async def get_me(user: dict = Depends(get_current_user)) -> UserEnvelope:
    """Get the current authenticated user's profile."""
    return UserEnvelope(user=UserOut(**user))
