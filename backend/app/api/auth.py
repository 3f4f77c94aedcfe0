"""Auth API routes: registration, login and the current user's profile."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user
from app.schemas.user import (
    AuthResponse,
    MessageResponse,
    PasswordChange,
    UserEnvelope,
    UserLogin,
    UserRegister,
    UserUpdate,
)
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    service: AuthService = Depends(get_auth_service),
):
    """Register a new user. Requires RODO consent."""
    logger.info(f"Registration attempt for email: {user_data.email}")
    token, user = service.register(user_data)
    return {"token": token, "user": user}


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    service: AuthService = Depends(get_auth_service),
):
    """Exchange email and password for a session token."""
    token, user = service.login(credentials.email, credentials.password)
    logger.info(f"User {user.id} logged in")
    return {"token": token, "user": user}


@router.get("/me", response_model=UserEnvelope)
async def get_me(
    current_user: int = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return {"user": service.get_profile(current_user)}


@router.put("/me", response_model=UserEnvelope)
async def update_me(
    user_data: UserUpdate,
    current_user: int = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    """Partial profile update; fields not sent are left unchanged."""
    return {"user": service.update_profile(current_user, user_data)}


@router.delete("/me", response_model=MessageResponse)
async def delete_me(
    current_user: int = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.delete_account(current_user)
    return {"message": "Account deleted"}


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    passwords: PasswordChange,
    current_user: int = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.change_password(current_user, passwords.current_password, passwords.new_password)
    return {"message": "Password changed"}
