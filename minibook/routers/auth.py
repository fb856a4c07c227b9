from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from minibook.core.database import get_db
from minibook.core.dependencies import get_current_user
from minibook.core.limiter import auth_rate_limit, limiter, rate_limit_disabled
from minibook.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
)
from minibook.services.auth import AuthService

router = APIRouter(tags=["auth"])


def _auth_service(request: Request, db: Session) -> AuthService:
    state = request.app.state
    return AuthService(db, state.jwt_manager, state.password_helper)


@router.post("/register", response_model=AuthResponse)
@limiter.limit(auth_rate_limit, exempt_when=rate_limit_disabled)
def register(
    request: Request, payload: RegisterRequest, db: Session = Depends(get_db)
):
    """Create an account and return a bearer token for it"""
    service = _auth_service(request, db)
    user, token = service.register(payload)
    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=service.user_to_response(user),
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(auth_rate_limit, exempt_when=rate_limit_disabled)
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    """Login with username or email"""
    service = _auth_service(request, db)
    user, token = service.authenticate(payload.username, payload.password)
    return AuthResponse(
        message="Login successful",
        token=token,
        user=service.user_to_response(user),
    )


@router.get("/me", response_model=MeResponse)
def me(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = _auth_service(request, db)
    user = service.get_profile(current_user["id"])
    return MeResponse(user=service.user_to_response(user))
