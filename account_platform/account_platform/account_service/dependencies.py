"""Request-scoped dependencies and the bearer-token auth gate."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .db import Database
from .errors import AuthenticationError
from .service import AccountService
from .tokens import TokenService
from .utils.event_logger import log_account_event

logger = logging.getLogger(__name__)


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


@dataclass(frozen=True)
class AuthenticatedIdentity:
    public_id: str
    expires_at: datetime


class AuthGate:
    """
    Bearer token authentication for protected routes.

    Rejects the request with AuthenticationError unless a valid, unexpired
    token is presented. On success the token subject is placed on
    request.state.user_public_id. Never touches the database.
    """

    def __init__(self, token_service: Optional[TokenService] = None):
        self._token_service = token_service
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> AuthenticatedIdentity:
        credentials: Optional[HTTPAuthorizationCredentials] = await self._bearer(request)
        if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
            log_account_event("token_rejected", request)
            raise AuthenticationError("authorization header required")

        tokens = self._token_service or get_token_service(request)
        try:
            claims = tokens.verify(credentials.credentials)
        except AuthenticationError as e:
            logger.debug(f"Token rejected ({type(e).__name__}): {e.message}")
            log_account_event("token_rejected", request)
            raise AuthenticationError("invalid or expired token") from e

        request.state.user_public_id = claims.subject
        return AuthenticatedIdentity(public_id=claims.subject, expires_at=claims.expires_at)


require_auth = AuthGate()
