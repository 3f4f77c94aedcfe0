"""
Auth Service - registration, login and profile management.
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    DependencyError,
    InvalidCredentials,
    NotFoundError,
    ValidationError,
)
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.user import User
from app.schemas.user import UserRegister, UserUpdate

logger = logging.getLogger(__name__)

# Field names on UserUpdate that map 1:1 onto User columns
PROFILE_FIELDS = ("first_name", "last_name", "email", "phone_number", "phone_prefix", "date_of_birth")


class AuthService:
    """Credential store operations. Tokens are stateless and never persisted."""

    def __init__(self, db: Session, rounds: Optional[int] = None):
        self.db = db
        self.rounds = rounds or settings.BCRYPT_ROUNDS

    def issue_token(self, user: User) -> str:
        return create_access_token(
            str(user.id),
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Integrity error while trying to {action}")
            raise ValidationError("Email already in use")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
            raise DependencyError("Database error") from e

    def _get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def register(self, data: UserRegister) -> Tuple[str, User]:
        """
        Create an account and return ``(token, user)``.

        Raises:
            ValidationError: Consent not given or email already registered
        """
        if not data.rodo:
            raise ValidationError("RODO consent is required")

        if self._email_taken(data.email):
            logger.info(f"Registration rejected, email in use: {data.email}")
            raise ValidationError("Email already in use")

        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            password_hash=get_password_hash(data.password, rounds=self.rounds),
            phone_number=data.phone_number,
            phone_prefix=data.phone_prefix,
            date_of_birth=data.date_of_birth,
            rodo=True,
        )
        self.db.add(user)
        self._commit("register user")
        self.db.refresh(user)

        logger.info(f"Registered user {user.id}")
        return self.issue_token(user), user

    def login(self, email: str, password: str) -> Tuple[str, User]:
        """Unknown email and wrong password raise the same InvalidCredentials."""
        user = self.db.query(User).filter(User.email == email).first()

        if not user or not verify_password(password, user.password_hash):
            logger.info("Login failed")
            raise InvalidCredentials("Invalid credentials")

        return self.issue_token(user), user

    def get_profile(self, user_id: int) -> User:
        return self._get_user(user_id)

    def update_profile(self, user_id: int, data: UserUpdate) -> User:
        """Apply the fields the client sent; email must stay unique."""
        user = self._get_user(user_id)
        changes = {name: getattr(data, name) for name in data.model_fields_set if name in PROFILE_FIELDS}

        if changes.get("email") is None:
            changes.pop("email", None)
        elif changes["email"] != user.email and self._email_taken(changes["email"], exclude_id=user_id):
            raise ValidationError("Email already in use")

        for name, value in changes.items():
            setattr(user, name, value)

        self._commit("update profile")
        self.db.refresh(user)
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self._get_user(user_id)

        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentials("Incorrect current password")

        if len(new_password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
            )

        user.password_hash = get_password_hash(new_password, rounds=self.rounds)
        self._commit("change password")
        logger.info(f"Password changed for user {user_id}")

    def delete_account(self, user_id: int) -> None:
        """Remove the user (and, by cascade, their document rows)."""
        user = self._get_user(user_id)
        self.db.delete(user)
        self._commit("delete account")
        logger.info(f"Deleted user {user_id}")
