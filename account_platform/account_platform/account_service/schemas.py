from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field, field_validator

from typing import Annotated, Optional

# passlib refuses secrets above 4096 bytes; 1024 characters stays under that for any UTF-8 input
MAX_PASSWORD_LENGTH = 1024


def check_email_syntax(v: str) -> str:
    """Validate the address but keep it exactly as submitted."""
    try:
        validate_email(v, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"invalid email address: {e}") from e
    return v


Email = Annotated[str, AfterValidator(check_email_syntax)]


class SignUpRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=6, max_length=MAX_PASSWORD_LENGTH)
    name: str = Field(..., min_length=1)
    phone: Optional[str] = ""
    country: Optional[str] = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "email": "user@example.com",
                    "password": "password123",
                    "name": "John Doe",
                    "phone": "234567890",
                    "country": "US",
                }
            ]
        }
    }


class SignInRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class UserResponse(BaseModel):
    uuid: str
    email: str
    name: str
    phone: str = ""
    created_at: str


class AuthSuccess(BaseModel):
    message: str
    user: UserResponse
    token: str


class CountryResponse(BaseModel):
    id: int
    name: Optional[str] = None
    shortname: Optional[str] = None
    currency_code: Optional[str] = None
    currency_symbol: Optional[str] = None
    timezone_name: Optional[str] = None


class ProfileUser(UserResponse):
    country: Optional[CountryResponse] = None


class ProfileResponse(BaseModel):
    message: str = "Profile retrieved successfully"
    user: ProfileUser


class HealthResponse(BaseModel):
    status: int = 0
    message: str = "Server is Healthy"


class ReadinessResponse(BaseModel):
    status: str
    database: str


class ErrorResponse(BaseModel):
    error: str
