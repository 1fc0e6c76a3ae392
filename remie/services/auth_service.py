import logging
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.core.config import get_settings
from remie.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from remie.models.user import User, UserStatus
from remie.schemas.user import RegisterRequest
from remie.services.email_service import EmailService
from remie.services.user_service import UserService
from typing import Tuple

logger = logging.getLogger(__name__)

# Statuses that may sign in; PENDING_APPROVAL users can log in and look
# around, but money-moving endpoints refuse them.
LOGIN_STATUSES = (UserStatus.ACTIVE, UserStatus.PENDING_VERIFICATION, UserStatus.PENDING_APPROVAL)

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent"


class AuthService:
    """
    Email/password authentication with JWT access and refresh tokens.
    """

    @staticmethod
    def issue_tokens(db: Session, user: User) -> Tuple[str, str]:
        """
        Create a fresh access/refresh token pair and store the refresh token.

        The caller commits.

        :return: Tuple of (access_token, refresh_token)
        """
        access_token = create_access_token(data={
            "sub": user.id,
            "user_id": user.id,
            "email": user.email,
            "role": user.role.value,
        })
        refresh_token = create_refresh_token(user.id)
        user.refresh_token = refresh_token
        return access_token, refresh_token

    @staticmethod
    def register(db: Session, data: RegisterRequest) -> Tuple[User, str, str]:
        """
        Register a student account. The account waits for admin approval.

        :param db: Database session
        :param data: Registration payload
        :return: Tuple of (user, access_token, refresh_token)
        :raises: HTTPException 409 if the email or phone number is taken
        """
        if UserService.get_user_by_email(db, data.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists"
            )

        if data.phone_number and UserService.get_user_by_phone(db, data.phone_number):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this phone number already exists"
            )

        try:
            user = UserService.create_user(
                db,
                email=data.email,
                password=data.password,
                first_name=data.first_name,
                last_name=data.last_name,
                phone_number=data.phone_number,
                student_id=data.student_id,
                institution=data.institution,
            )
            access_token, refresh_token = AuthService.issue_tokens(db, user)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(user)
        logger.info("User registered", extra={"user_id": user.id})

        EmailService.send_welcome(user.email, user.first_name)

        return user, access_token, refresh_token

    @staticmethod
    def login(db: Session, email: str, password: str) -> Tuple[User, str, str]:
        """
        Check credentials and rotate the refresh token.

        :raises: HTTPException 401 for bad credentials, 403 for blocked accounts
        """
        user = UserService.get_user_by_email(db, email)
        if not user or not verify_password(password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        if user.status not in LOGIN_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is not active. Please contact support."
            )

        access_token, refresh_token = AuthService.issue_tokens(db, user)
        user.last_login_at = datetime.utcnow()
        db.commit()
        db.refresh(user)

        logger.info("User logged in", extra={"user_id": user.id})
        return user, access_token, refresh_token

    @staticmethod
    def refresh(db: Session, refresh_token: str) -> Tuple[str, str]:
        """
        Exchange a refresh token for a new token pair.

        Only the most recently issued refresh token is accepted.
        """
        invalid = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

        payload = decode_refresh_token(refresh_token)
        if payload is None:
            raise invalid

        user = UserService.get_user_by_id(db, payload.get("user_id"))
        if not user or user.refresh_token != refresh_token:
            raise invalid

        access_token, new_refresh_token = AuthService.issue_tokens(db, user)
        db.commit()
        return access_token, new_refresh_token

    @staticmethod
    def logout(db: Session, user: User) -> None:
        user.refresh_token = None
        db.commit()

    @staticmethod
    def forgot_password(db: Session, email: str) -> str:
        """
        Start a password reset. Responds identically whether or not the
        email is registered.

        :return: The message to show the caller
        """
        user = UserService.get_user_by_email(db, email)
        if not user:
            return FORGOT_PASSWORD_MESSAGE

        settings = get_settings()
        token, token_hash = generate_reset_token()
        user.reset_token = token_hash
        user.reset_token_expiry = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        db.commit()

        reset_url = f"{settings.FRONTEND_URL}/reset-password/{token}"
        EmailService.send_password_reset(user.email, user.first_name, reset_url)
        logger.info("Password reset requested", extra={"user_id": user.id})

        return FORGOT_PASSWORD_MESSAGE

    @staticmethod
    def reset_password(db: Session, token: str, password: str) -> None:
        """
        Set a new password using the emailed reset token.

        :raises: HTTPException 400 if the token is unknown or expired
        """
        user = db.query(User).filter(
            User.reset_token == hash_token(token),
            User.reset_token_expiry > datetime.utcnow(),
        ).first()

        if not user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset token"
            )

        user.password_hash = hash_password(password)
        user.reset_token = None
        user.reset_token_expiry = None
        user.refresh_token = None
        # Accounts created for remittance recipients are verified by the emailed link
        if user.status == UserStatus.PENDING_VERIFICATION:
            user.status = UserStatus.ACTIVE
            user.email_verified = True
        db.commit()

        logger.info("Password reset", extra={"user_id": user.id})
