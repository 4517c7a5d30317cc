"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer authentication.

One auth method: the Authorization: Bearer <token> header, resolved through
the SessionAuthority on app.state.sessions.

resolve_request() is the soft variant (returns the Resolution sentinel).
require_auth() wraps it, raises HTTP 401 if unauthenticated, and attaches
the identity to request.state.auth for downstream handlers.
get_current_user() returns just the User.

Protected routers declare the guard once:
    router = APIRouter(dependencies=[Depends(require_auth)])
so the 401 is raised before any handler code runs.

Layer rule: no imports from api/ or tracker/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request

from auth.models import Authenticated, Resolution, User
from auth.sessions import SessionAuthority
from auth.store import AuthStore


@dataclass(frozen=True)
class AuthContext:
    """The authenticated identity attached to request.state.auth."""

    user: User
    token: str


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=401, detail="Unauthorized")


def resolve_request(request: Request) -> Resolution:
    """Resolve the request's Authorization header. Never raises for bad tokens.

    getlist() exposes every Authorization value the client sent; the
    SessionAuthority applies the first-wins rule.
    """
    sessions: SessionAuthority = request.app.state.sessions
    values = request.headers.getlist("authorization")
    return sessions.authenticate_header(values)


def require_auth(request: Request) -> AuthContext:
    """Require a valid bearer session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(auth: AuthContext = Depends(require_auth)): ...
    """
    resolution = resolve_request(request)
    if not isinstance(resolution, Authenticated):
        raise _unauthorized()

    auth_store: AuthStore = request.app.state.auth_store
    user = auth_store.get_by_id(resolution.user_id)
    if user is None:
        raise _unauthorized()

    context = AuthContext(user=user, token=resolution.token)
    request.state.auth = context
    return context


def get_current_user(request: Request) -> User:
    """Require authentication and return the current User.

    Reuses request.state.auth when a router-level require_auth already ran,
    so the token is not resolved twice.
    """
    existing = getattr(request.state, "auth", None)
    if isinstance(existing, AuthContext):
        return existing.user
    return require_auth(request).user
