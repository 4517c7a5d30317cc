"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- create account; returns a session token (201)
  POST /api/v1/auth/login    -- password login; returns a session token
  POST /api/v1/auth/logout   -- revoke the presented token; always 200
  GET  /api/v1/auth/me       -- current user info (requires auth)

Security:
  [H2] POST /login and POST /signup are rate-limited per IP (limits from Settings).
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on every response that carries a token.
  Signup, login and logout are sync handlers: FastAPI runs them in its
  worker threadpool, so the slow KDF and the store writes never block the
  event loop.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit, signup_limit
from api.models import AuthResponse, ErrorResponse, LoginRequest, LogoutResponse, MeResponse, SignupRequest, UserOut
from auth.accounts import EmailTakenError, authenticate_user, register_user
from auth.credentials import CredentialManager
from auth.dependencies import get_current_user
from auth.models import User
from auth.sessions import SessionAuthority, extract_bearer_token, normalize_authorization_header
from auth.store import AuthStore

logger = logging.getLogger("buildtrack.auth")

# Auth policy:
# - POST /api/v1/auth/signup: public -- account creation
# - POST /api/v1/auth/login:  public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout: public -- revoking a token needs no prior check; idempotent
# - GET  /api/v1/auth/me:     requires auth (get_current_user)
router = APIRouter()


def _token_response(status_code: int, token: str, user: User) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(token=token, user=_user_out(user)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(signup_limit)  # [H2] below @router so the router registers the limited wrapper
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create an account and log it in.

    The duplicate-email check is the store's UNIQUE constraint, so concurrent
    signups with the same email cannot both succeed. On conflict nothing is
    written and the caller gets 409.
    """
    auth_store: AuthStore = request.app.state.auth_store
    credentials: CredentialManager = request.app.state.credentials
    sessions: SessionAuthority = request.app.state.sessions

    try:
        user = register_user(auth_store, credentials, body.name, body.email, body.password)
    except EmailTakenError as exc:
        logger.warning("Signup rejected: email already registered")
        raise HTTPException(
            status_code=409,
            detail=ErrorResponse(error="Email already in use", code="email_taken").model_dump(exclude_none=True),
        ) from exc

    session = sessions.create_session(user.id)
    logger.info("User signed up (user_id=%s)", user.id)
    return _token_response(201, session.token, user)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(login_limit)  # [H2] brute-force mitigation
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a new session token.

    Uses authenticate_user() which includes timing equalization [C1]. Do NOT
    inline get_by_email() + verify() -- that re-introduces the timing attack.

    Returns the same error for unknown email and wrong password to avoid
    leaking account existence. Each login creates an independent session;
    earlier tokens for the same user stay valid.
    """
    auth_store: AuthStore = request.app.state.auth_store
    credentials: CredentialManager = request.app.state.credentials
    sessions: SessionAuthority = request.app.state.sessions

    user = authenticate_user(auth_store, credentials, body.email, body.password)
    if user is None:
        logger.warning("Failed login attempt")
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(error="Invalid credentials", code="bad_credentials").model_dump(exclude_none=True),
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    session = sessions.create_session(user.id)
    logger.info("User logged in (user_id=%s)", user.id)
    return _token_response(200, session.token, user)


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request) -> LogoutResponse:
    """Revoke the presented bearer token, if any.

    Always 200: logging out with a missing, unknown, or expired token is
    not an error.
    """
    sessions: SessionAuthority = request.app.state.sessions
    token = extract_bearer_token(normalize_authorization_header(request.headers.getlist("authorization")))
    if sessions.revoke(token):
        logger.info("User logged out")
    return LogoutResponse(ok=True)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(user=_user_out(current_user))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name)
