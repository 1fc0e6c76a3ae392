import logging
from sqlalchemy import or_
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.core.security import hash_password
from remie.models.user import User, UserRole, UserStatus
from remie.schemas.user import UpdateProfileRequest
from typing import Optional

logger = logging.getLogger(__name__)


class UserService:
    """
    Service layer for user-related operations.
    Separates business logic from route handlers.
    """

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """
        Find a user by email.
        :param db: Database session
        :param email: User's email address (matched case-insensitively)
        :return: User object if found, None otherwise
        """
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        """
        Find a user by their ID.
        :param db: Database session
        :param user_id: User's ID
        :return: User object if found, None otherwise
        """
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_phone(db: Session, phone_number: str) -> Optional[User]:
        return db.query(User).filter(User.phone_number == phone_number).first()

    @staticmethod
    def find_active_by_identifier(db: Session, identifier: str) -> Optional[User]:
        """
        Find an ACTIVE user by email, phone number, student ID or wallet number.

        :param db: Database session
        :param identifier: Any of the above
        :return: User object if found, None otherwise
        """
        from remie.models.wallet import Wallet

        return db.query(User).outerjoin(Wallet, Wallet.user_id == User.id).filter(
            User.status == UserStatus.ACTIVE,
            or_(
                User.email == identifier.lower(),
                User.phone_number == identifier,
                User.student_id == identifier,
                Wallet.wallet_number == identifier,
            )
        ).first()

    @staticmethod
    def create_user(
            db: Session,
            email: str,
            password: str,
            first_name: str,
            last_name: str = "",
            role: UserRole = UserRole.STUDENT,
            user_status: UserStatus = UserStatus.PENDING_APPROVAL,
            email_verified: bool = False,
            **profile,
    ) -> User:
        """
        Create a user together with their wallet. Also used by the admin CLI.

        The user and wallet are committed together.

        :param db: Database session
        :param email: Email address, stored lowercased
        :param password: Plain password, stored hashed
        :param profile: Optional phone_number, student_id, institution
        :return: Newly created user object with wallet
        """
        from remie.services.wallet_service import WalletService

        db_user = User(
            email=email.strip().lower(),
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=user_status,
            email_verified=email_verified,
            **profile,
        )
        db.add(db_user)
        db.flush()

        WalletService.create_wallet_for_user(db, db_user)
        db.refresh(db_user)

        logger.info("User created", extra={"user_id": db_user.id, "role": role.value})
        return db_user

    @staticmethod
    def update_profile(db: Session, user: User, data: UpdateProfileRequest) -> User:
        """
        Update the caller's own profile.

        :raises: HTTPException 409 if the phone number belongs to someone else
        """
        updates = data.model_dump(exclude_unset=True)

        phone_number = updates.get("phone_number")
        if phone_number and phone_number != user.phone_number:
            existing = UserService.get_user_by_phone(db, phone_number)
            if existing and existing.id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Phone number already in use"
                )

        for field, value in updates.items():
            setattr(user, field, value)

        db.commit()
        db.refresh(user)
        return user
