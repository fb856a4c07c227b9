# core/security.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from minibook.core.config import Settings
from minibook.core.exceptions import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

IDENTITY_CLAIMS = ("id", "username", "email")


class JWTManager:
    """JWT token management for authentication"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_hours: int = 24,
        issuer: str = "MiniBook",
        fallback_keys: Iterable[str] = (),
    ):
        if not secret_key:
            raise ValueError("JWT secret key must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_expire = timedelta(hours=expire_hours)
        self.issuer = issuer
        # Previous secrets stay valid for verification after a key rotation.
        self.fallback_keys = [key for key in fallback_keys if key]

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTManager":
        return cls(
            secret_key=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_hours=settings.jwt_expiration_hours,
            issuer=settings.jwt_issuer,
            fallback_keys=settings.jwt_previous_secrets,
        )

    def issue(self, claims: Dict[str, Any], now: Optional[datetime] = None) -> str:
        """
        Create a signed access token

        Args:
            claims: Mapping holding the user's id, username and email
            now: Issue time, defaults to the current UTC time

        Returns:
            JWT access token string
        """
        issued_at = now or datetime.now(timezone.utc)
        expire = issued_at + self.token_expire

        payload = {
            "id": claims["id"],
            "username": claims["username"],
            "email": claims["email"],
            "sub": str(claims["id"]),
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
            "iss": self.issuer,
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Access token issued for user: {claims['id']}")
        return token

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode an access token.

        Raises TokenExpiredError for a correctly signed token past its expiry
        and InvalidTokenError for anything else that fails to verify.
        """
        if not token or not isinstance(token, str):
            raise InvalidTokenError()

        payload = None
        for key in [self.secret_key, *self.fallback_keys]:
            try:
                payload = jwt.decode(
                    token,
                    key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True},
                )
                break
            except ExpiredSignatureError:
                logger.info("Rejected expired token")
                raise TokenExpiredError()
            except JWTError:
                continue

        if payload is None:
            logger.warning("JWT verification failed for all configured keys")
            raise InvalidTokenError()

        if payload.get("type") != "access" or payload.get("iss") != self.issuer:
            raise InvalidTokenError()

        if any(claim not in payload for claim in IDENTITY_CLAIMS):
            raise InvalidTokenError()

        return payload
