# minibook/services/auth.py
import logging
from typing import Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from minibook.core.decorator import db_exception
from minibook.core.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
)
from minibook.core.hasher import PasswordHelper
from minibook.core.security import JWTManager
from minibook.models.user import User
from minibook.schemas.auth import RegisterRequest, UserResponse

logger = logging.getLogger(__name__)

# Shared by both login failure paths so they are indistinguishable.
INVALID_CREDENTIALS = "Invalid username or password"


class AuthService:
    def __init__(
        self,
        db: Session,
        jwt_manager: JWTManager,
        password_helper: PasswordHelper,
    ):
        self.db = db
        self.jwt_manager = jwt_manager
        self.password_helper = password_helper

    @db_exception
    def register(self, request: RegisterRequest) -> Tuple[User, str]:
        """Create an account and sign a token for it"""
        existing_user = (
            self.db.query(User)
            .filter(
                or_(
                    User.username == request.username,
                    User.email == request.email,
                )
            )
            .first()
        )

        if existing_user:
            raise ConflictError("Username or email already exists")

        user = User(
            username=request.username,
            email=request.email,
            hashed_password=self.password_helper.hash_password(request.password),
            full_name=request.full_name,
        )

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User registered: id={user.id} username={user.username}")
        return user, self.issue_token(user)

    def authenticate(self, identifier: str, password: str) -> Tuple[User, str]:
        """
        Login with username or email and password.
        Unknown users and wrong passwords produce the same error.
        """
        identifier = identifier.strip()
        user = (
            self.db.query(User)
            .filter(
                or_(User.username == identifier, User.email == identifier.lower())
            )
            .first()
        )

        if not user or not self.password_helper.check_password(
            password, user.hashed_password
        ):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError(INVALID_CREDENTIALS)

        logger.info(f"User logged in: id={user.id}")
        return user, self.issue_token(user)

    def get_profile(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def issue_token(self, user: User) -> str:
        return self.jwt_manager.issue(
            {"id": user.id, "username": user.username, "email": user.email}
        )

    @staticmethod
    def user_to_response(user: User) -> UserResponse:
        """Convert User model to UserResponse"""
        return UserResponse(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=user.avatar,
            created_at=user.created_at,
        )
