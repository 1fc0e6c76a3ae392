from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.common import MessageResponse
from remie.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from remie.services.auth_service import AuthService

# Create router
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a student account.

    The account starts as PENDING_APPROVAL: the user can sign in but cannot
    move money until an admin approves it.
    """
    user, access_token, refresh_token = AuthService.register(db, request)
    return AuthResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    user, access_token, refresh_token = AuthService.login(db, request.email, request.password)
    return AuthResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(request: RefreshTokenRequest, db: Session = Depends(get_db)):
    """
    Exchange a refresh token for a new access/refresh pair.
    """
    access_token, new_refresh_token = AuthService.refresh(db, request.refresh_token)
    return TokenResponse(access_token=access_token, refresh_token=new_refresh_token)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest, db: Session = Depends(get_db)):
    message = AuthService.forgot_password(db, request.email)
    return MessageResponse(message=message)


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(token: str, request: ResetPasswordRequest, db: Session = Depends(get_db)):
    AuthService.reset_password(db, token, request.password)
    return MessageResponse(message="Password reset successful")


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    AuthService.logout(db, current_user)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """
    Get the currently authenticated user.
    """
    return UserResponse.model_validate(current_user)
