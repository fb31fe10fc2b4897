"""
API request and response models for the credential service.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal representation. Route handlers map between the two -- and never put
a password or hash into a response model.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body shared by POST /register and POST /login.

    strict=True: a JSON number or boolean is a malformed body, not a username.
    Extra keys are ignored.
    """

    model_config = ConfigDict(strict=True)

    username: str = Field(min_length=1)
    # Length beyond bcrypt's 72-byte input limit is reported by the hashing
    # layer as a registration failure, not as a malformed body.
    password: str = Field(min_length=1)


class RegisterRequest(CredentialsRequest):
    """Request body for POST /register -- the credentials to store."""


class LoginRequest(CredentialsRequest):
    """Request body for POST /login -- the credentials to check."""


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RegisterResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    """Returned by POST /login on success.

    token is a fixed placeholder: the service does not issue or validate
    sessions.
    """

    token: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope for every non-2xx response."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
