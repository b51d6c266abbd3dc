"""
Bearer token issuance and verification.

Tokens are HS256 JWTs carrying the user's public identifier as `sub`.
Nothing is stored server-side: validity is signature plus expiry.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import jwt

from .errors import (
    TokenExpired,
    TokenIssuanceFailure,
    TokenMalformed,
    TokenSignatureInvalid,
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    expires_at: datetime
    issued_at: Optional[datetime] = None


class TokenService:
    def __init__(
        self,
        secret_key: str,
        algorithm: str = ALGORITHM,
        expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
    ):
        if not secret_key:
            raise ValueError("A non-empty token signing secret is required")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=expire_minutes)

    @classmethod
    def from_settings(cls, settings) -> "TokenService":
        return cls(
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        )

    def issue(self, subject: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {"sub": subject, "iat": now, "exp": now + self.ttl}
        try:
            return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            raise TokenIssuanceFailure("failed to generate token") from e

    def verify(self, token: str, now: Optional[datetime] = None) -> TokenClaims:
        """
        Decode and validate a token.

        Args:
            token: The encoded JWT
            now: Override the verification instant (tests)

        Returns:
            TokenClaims for a token with a valid signature that has not expired

        Raises:
            TokenMalformed: not a JWT, or `sub`/`exp` missing or mistyped
            TokenSignatureInvalid: signed with another key or algorithm
            TokenExpired: `exp` is in the past
        """
        try:
            data = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"], "verify_exp": now is None},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired("token has expired") from e
        except jwt.InvalidSignatureError as e:
            raise TokenSignatureInvalid("token signature is invalid") from e
        except jwt.InvalidAlgorithmError as e:
            raise TokenSignatureInvalid("token algorithm is not accepted") from e
        except jwt.InvalidTokenError as e:
            raise TokenMalformed(f"token is malformed: {e}") from e

        subject = data.get("sub")
        if not isinstance(subject, str) or not subject:
            raise TokenMalformed("token subject is missing")

        try:
            expires_at = datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as e:
            raise TokenMalformed("token expiry is not a timestamp") from e
        if now is not None and now >= expires_at:
            raise TokenExpired("token has expired")

        issued_at = None
        if "iat" in data:
            issued_at = datetime.fromtimestamp(data["iat"], tz=timezone.utc)
        return TokenClaims(subject=subject, expires_at=expires_at, issued_at=issued_at)
