"""
Account endpoints: signup, signin and the authenticated profile.
"""
from fastapi import APIRouter, Depends, Request, status

from ..dependencies import AuthenticatedIdentity, get_account_service, require_auth
from ..errors import DuplicateEmail, InvalidCredentials
from ..schemas import AuthSuccess, ErrorResponse, ProfileResponse, SignInRequest, SignUpRequest
from ..service import AccountService
from ..utils.event_logger import log_account_event

router = APIRouter(prefix="/api/account", tags=["Account"])


@router.post(
    "/signup",
    response_model=AuthSuccess,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid input data", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse},
    },
    summary="Register a new user",
)
def sign_up(
    payload: SignUpRequest,
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    try:
        result = service.sign_up(payload)
    except DuplicateEmail:
        log_account_event("signup_conflict", request, email=payload.email)
        raise
    log_account_event("signup_success", request, public_id=result.user.uuid, email=result.user.email)
    return result


@router.post(
    "/signin",
    response_model=AuthSuccess,
    responses={
        400: {"description": "Invalid input data", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse},
    },
    summary="User login",
)
def sign_in(
    payload: SignInRequest,
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    try:
        result = service.sign_in(payload)
    except InvalidCredentials:
        log_account_event("signin_failure", request, email=payload.email)
        raise
    log_account_event("signin_success", request, public_id=result.user.uuid, email=result.user.email)
    return result


@router.get(
    "/profile",
    response_model=ProfileResponse,
    responses={
        401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Profile of the authenticated user",
)
def get_profile(
    identity: AuthenticatedIdentity = Depends(require_auth),
    service: AccountService = Depends(get_account_service),
):
    return service.get_profile(identity.public_id)
