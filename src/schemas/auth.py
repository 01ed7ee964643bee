"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, Field


class UserRegister(BaseModel):
    """User registration request."""

    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=8, max_length=72)


class UserLogin(BaseModel):
    """User login request."""

    username: str = Field(..., max_length=100)
    password: str = Field(..., max_length=72)


class TotpVerify(BaseModel):
    """One-time code for the second factor."""

    code: str = Field(..., pattern=r"^\d{6}$")


class AuthResponse(BaseModel):
    """Authentication response with token and user info."""

    access_token: str
    token_type: str = "bearer"  # noqa: S105
    second_factor_required: bool = False
    user: "UserResponse"


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    has_second_factor: bool


class SessionResponse(UserResponse):
    """Current user plus the state of the second factor in this session."""

    second_factor_satisfied: bool
