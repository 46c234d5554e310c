import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from shipquote.auth_local import CredentialService, hash_password, verify_password
from shipquote.core_settings import Settings, get_settings
from shipquote.domain.models import User
from shipquote.infrastructure.repository import UserRepository
from .errors import EmailAlreadyRegistered, Unauthorized, ValidationError
from .schemas import LoginRequest, LoginResponse, RegisterRequest, UserRead
from .validation import parse

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class UserService:
    def __init__(self, db: Session, credentials: CredentialService, settings: Optional[Settings] = None):
        self.repo = UserRepository(db)
        self.credentials = credentials
        self.settings = settings or get_settings()

    def register(self, payload: Any) -> UserRead:
        request = parse(RegisterRequest, payload)
        if len(request.password) < self.settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(
                "password",
                f"password: Must be at least {self.settings.PASSWORD_MIN_LENGTH} characters",
            )
        if self.repo.find_by_email(request.email) is not None:
            raise EmailAlreadyRegistered()

        user = self.repo.create(
            User(
                nickname=request.nickname,
                names=request.names,
                lastnames=request.lastnames,
                email=request.email,
                password_hash=hash_password(request.password, self.settings.BCRYPT_ROUNDS),
                city=request.city,
                phone=request.phone,
            )
        )
        logger.info(f"User {user.id} registered", extra={"extra_fields": {"user_id": user.id}})
        return UserRead.model_validate(user)

    def login(self, payload: Any) -> LoginResponse:
        request = parse(LoginRequest, payload)
        user = self.repo.find_by_email(request.email)
        # Same answer for unknown email and wrong password
        if user is None or not verify_password(request.password, user.password_hash):
            raise Unauthorized(INVALID_CREDENTIALS)
        return LoginResponse(token=self.credentials.issue_token(user.id), user=UserRead.model_validate(user))

    def logout(self, token: str) -> None:
        self.credentials.revoke(token)
