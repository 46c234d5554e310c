import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from shipquote.application.errors import Unauthorized
from shipquote.core_settings import Settings, get_settings
from shipquote.infrastructure.cache import TokenRevocationSet


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class CredentialService:
    """Issues and checks signed bearer tokens; revocation is keyed by the token's ``jti``."""

    def __init__(self, revocations: TokenRevocationSet, settings: Optional[Settings] = None):
        self.revocations = revocations
        self.settings = settings or get_settings()

    def issue_token(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.JWT_EXPIRES_MINUTES),
        }
        return jwt.encode(payload, self.settings.JWT_SECRET, algorithm=self.settings.JWT_ALG)

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.settings.JWT_SECRET,
                algorithms=[self.settings.JWT_ALG],
                options={"require": ["sub", "jti", "exp"]},
            )
        except jwt.PyJWTError as exc:
            raise Unauthorized("Invalid or expired token") from exc

    def is_revoked(self, token: str) -> bool:
        return self.revocations.is_revoked(self.decode(token)["jti"])

    def verify_token(self, token: str) -> int:
        if self.is_revoked(token):
            raise Unauthorized("Token has been revoked")
        claims = self.decode(token)
        try:
            return int(claims["sub"])
        except ValueError as exc:
            raise Unauthorized("Invalid or expired token") from exc

    def revoke(self, token: str) -> None:
        claims = self.decode(token)
        remaining = int(claims["exp"] - datetime.now(timezone.utc).timestamp())
        self.revocations.revoke(claims["jti"], remaining)
