"""
Account Service - user registration, authentication and bearer tokens
"""
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import PasswordHasher
from .config import Settings, get_settings
from .db import Database
from .errors import AccountError, AuthenticationError, InternalError, StoreError
from .repository import SqlCountryStore, SqlUserStore
from .routes import account, health
from .service import AccountService
from .tokens import TokenService
from .utils.event_logger import configure_logging

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid input"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{field}: {message}" if field else message


async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    if isinstance(exc, (InternalError, StoreError)):
        logger.error(
            f"Internal error on {request.method} {request.url.path}: {exc.message} {exc.details}",
            exc_info=exc,
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _validation_message(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": InternalError.public_message},
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    account_service: Optional[AccountService] = None,
) -> FastAPI:
    """
    Build the application with every collaborator constructed explicitly.

    Args:
        settings: Configuration; defaults to the environment
        database: Database to use; defaults to one built from settings
        account_service: Service override (tests use in-memory stores)
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    if settings.uses_default_secret:
        logger.warning("JWT_SECRET is not set; using the development default")

    database = database or Database.from_settings(settings)
    token_service = TokenService.from_settings(settings)
    if account_service is None:
        account_service = AccountService(
            users=SqlUserStore(database),
            countries=SqlCountryStore(database),
            tokens=token_service,
            hasher=PasswordHasher(settings.PASSWORD_HASH_ROUNDS),
        )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Create tables on startup, release connections on shutdown"""
        database.init_db()
        yield
        database.dispose()

    app = FastAPI(
        title="Account Service",
        description="User registration, authentication and bearer token issuance",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.token_service = account_service.tokens
    app.state.account_service = account_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(account.router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    logger.info(f"Starting account service on {settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
