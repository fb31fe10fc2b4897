"""
api/routes/auth.py -- Registration and login endpoints.

Routes:
  POST /register  -- create a user; 201 on success, 409 if the name is taken
  POST /login     -- check a password; 200 with a placeholder token, else 401

Both are public. A body that does not decode into CredentialsRequest never
reaches these functions: the RequestValidationError handler in api/main.py
answers 400 first, so no store call is made.

Security:
  Login answers "no such user" and "wrong password" with the same status and
  body, and authenticate() spends the same bcrypt time on both, so neither
  the response nor its latency reveals which usernames exist.
  POST /login is rate-limited per client address (LOGIN_RATE_LIMIT).
  Cache-Control: no-store on every response from these routes.

Handlers are plain `def`: FastAPI runs them in its thread pool, so the
deliberate bcrypt cost blocks one worker thread instead of the event loop.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from auth.errors import CredentialError, CredentialMismatch, DuplicateUser, UserNotFound
from auth.passwords import authenticate
from auth.store import CredentialStore
from core.config import get_settings

logger = logging.getLogger("credsvc.api")

router = APIRouter()

_BAD_CREDENTIALS = ErrorDetail(code="bad_credentials", message="Invalid username or password.")


def _error(status_code: int, detail: ErrorDetail) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=ErrorResponse(error=detail).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a user with a bcrypt-hashed password.

    Any store failure is reported as 409. HashingFailure shares the status
    with DuplicateUser so clients see one registration-failed outcome; the
    server log keeps them apart.
    """
    store: CredentialStore = request.app.state.store
    try:
        user = store.create_user(body.username, body.password)
    except DuplicateUser as exc:
        logger.info("Registration rejected: username already taken")
        return _error(409, ErrorDetail(code="conflict", message=str(exc)))
    except CredentialError:
        logger.exception("Registration failed while storing credentials")
        return _error(409, ErrorDetail(code="conflict", message="Could not register user."))

    logger.info("Registered user id=%d", user.id)
    resp = JSONResponse(
        status_code=201,
        content=RegisterResponse(message="user created successfully").model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify username and password; return the placeholder token.

    Do NOT inline get_user_by_username() + verify_password() here --
    authenticate() carries the timing equalization for unknown users.
    """
    store: CredentialStore = request.app.state.store
    try:
        user = authenticate(store, body.username, body.password)
    except (UserNotFound, CredentialMismatch):
        logger.info("Login failed")
        return _error(401, _BAD_CREDENTIALS)

    logger.info("Login succeeded for user id=%d", user.id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(token=get_settings().placeholder_token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
