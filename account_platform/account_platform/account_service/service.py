"""
Account service: signup and signin business rules.

Pure business logic with no HTTP dependencies. Store errors are translated
here so that only errors.AccountError kinds reach the transport layer.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from .auth import PasswordHasher
from .errors import (
    ConstraintViolation,
    DuplicateEmail,
    InvalidCredentials,
    NotFound,
    StoreError,
    StoreFailure,
    ValidationError,
)
from .models import Country, User
from .repository import CountryStore, UserStore
from .schemas import (
    MAX_PASSWORD_LENGTH,
    AuthSuccess,
    CountryResponse,
    ProfileResponse,
    ProfileUser,
    SignInRequest,
    SignUpRequest,
    UserResponse,
)
from .tokens import TokenService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SIGNUP_MESSAGE = "User registered successfully"
SIGNIN_MESSAGE = "Login successful"


def format_timestamp(value: datetime) -> str:
    """RFC 3339 / ISO-8601 in UTC, e.g. 2024-12-05T08:00:00Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        uuid=user.uuid,
        email=user.email,
        name=user.name,
        phone=user.phone or "",
        created_at=format_timestamp(user.created_at),
    )


class AccountService:
    def __init__(
        self,
        users: UserStore,
        countries: CountryStore,
        tokens: TokenService,
        hasher: PasswordHasher,
    ):
        self.users = users
        self.countries = countries
        self.tokens = tokens
        self.hasher = hasher

    def sign_up(self, req: SignUpRequest) -> AuthSuccess:
        """
        Register a new user and issue a token for it.

        Raises:
            ValidationError: input fails the boundary checks
            DuplicateEmail: an active user already has this email
            HashingFailure, StoreFailure, TokenIssuanceFailure: internal errors
        """
        self._validate_sign_up(req)

        try:
            self.users.find_user_by_email(req.email)
        except NotFound:
            pass
        except StoreError as e:
            raise StoreFailure("failed to check existing user", details=e.details) from e
        else:
            raise DuplicateEmail(req.email)

        country_id = self._resolve_country_id(req.country)

        user = User(
            email=req.email,
            name=req.name,
            phone=req.phone or "",
            mobile_country_id=country_id,
            password=self.hasher.hash_password(req.password),
        )

        try:
            user = self.users.create_user(user)
        except ConstraintViolation as e:
            # Lost the race with a concurrent signup for the same email
            raise DuplicateEmail(req.email) from e
        except StoreError as e:
            raise StoreFailure("failed to create user", details=e.details) from e

        token = self.tokens.issue(user.uuid)
        logger.info(f"[Signup] User registered: user_id={user.id}, uuid={user.uuid}")
        return AuthSuccess(message=SIGNUP_MESSAGE, user=to_user_response(user), token=token)

    def sign_in(self, req: SignInRequest) -> AuthSuccess:
        """
        Authenticate by email and password.

        Unknown email and wrong password both raise the same InvalidCredentials,
        and both pay for one hash verification.
        """
        try:
            user = self.users.find_user_by_email(req.email)
        except NotFound:
            self.hasher.dummy_verify()
            raise InvalidCredentials()
        except StoreError as e:
            raise StoreFailure("failed to find user", details=e.details) from e

        if not self.hasher.verify_password(req.password, user.password):
            raise InvalidCredentials()

        token = self.tokens.issue(user.uuid)
        logger.info(f"[Login] Successful login: user_id={user.id}, uuid={user.uuid}")
        return AuthSuccess(message=SIGNIN_MESSAGE, user=to_user_response(user), token=token)

    def get_profile(self, public_id: str) -> ProfileResponse:
        try:
            user = self.users.find_user_by_public_id(public_id)
        except StoreError as e:
            raise StoreFailure("failed to load profile", details=e.details) from e

        base = to_user_response(user)
        country = self._load_country(user.mobile_country_id)
        return ProfileResponse(
            user=ProfileUser(
                **base.model_dump(),
                country=CountryResponse(**country.to_dict()) if country else None,
            )
        )

    # ── helpers ──────────────────────────────────────────────

    @staticmethod
    def _validate_sign_up(req: SignUpRequest) -> None:
        if not req.email:
            raise ValidationError("email is required")
        if not req.password or len(req.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if len(req.password) > MAX_PASSWORD_LENGTH:
            raise ValidationError(
                f"password must be at most {MAX_PASSWORD_LENGTH} characters"
            )
        if not req.name or not req.name.strip():
            raise ValidationError("name is required")

    def _resolve_country_id(self, code: Optional[str]) -> Optional[int]:
        """Country tagging is best-effort: an unknown code never fails signup."""
        if not code:
            return None
        try:
            return self.countries.find_country_by_short_code(code).id
        except NotFound:
            logger.warning(f"[Signup] Unknown country code {code!r}, continuing without country")
        except StoreError as e:
            logger.warning(f"[Signup] Country lookup failed for {code!r}: {e.message}")
        return None

    def _load_country(self, country_id: Optional[int]) -> Optional[Country]:
        if country_id is None:
            return None
        try:
            return self.countries.find_country_by_id(country_id)
        except (NotFound, StoreError):
            logger.warning(f"[Profile] Country {country_id} could not be loaded")
            return None
