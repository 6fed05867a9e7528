"""
Session resolution and the login gate.

Provides:
- SessionMiddleware: attaches a SessionHandle to every request and keeps
  the session cookie in step with it
- current_session / require_login: dependencies for route handlers
"""
import logging
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from api import config, sessions
from api.errors import LoginRequired
from api.sessions import Identity, SessionHandle

_logger = logging.getLogger(__name__)


def get_session_id(request: Request) -> Optional[str]:
    """Extract session ID from request cookies."""
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, session_id: str, max_age: int) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=config.SESSION_COOKIE_SECURE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=config.SESSION_COOKIE_SECURE,
    )


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Resolve the session cookie before routing; write the cookie back after.

    Resolution uses its own short-lived DB session. Any store failure is
    logged and the request proceeds as anonymous.
    """

    def __init__(self, app, session_factory, ttl: Optional[int] = None):
        super().__init__(app)
        self.session_factory = session_factory
        self.ttl = config.SESSION_TTL_SECONDS if ttl is None else ttl

    def _resolve(self, session_id: Optional[str]) -> SessionHandle:
        handle = None
        if session_id:
            db = self.session_factory()
            try:
                handle = sessions.resolve(db, session_id, self.ttl)
            except (SQLAlchemyError, ValueError, TypeError):
                _logger.exception("Session store unavailable, treating request as anonymous")
                db.rollback()
            finally:
                db.close()
        return handle or sessions.create_anonymous(self.ttl)

    async def dispatch(self, request: Request, call_next):
        session_id = get_session_id(request)
        handle = await run_in_threadpool(self._resolve, session_id)
        request.state.session = handle

        response = await call_next(request)

        if handle.destroyed:
            clear_session_cookie(response)
        elif handle.persisted:
            # rolling: every response restarts the browser-side countdown
            set_session_cookie(response, handle.id, self.ttl)
        elif session_id:
            clear_session_cookie(response)
        return response


def current_session(request: Request) -> SessionHandle:
    """FastAPI dependency: the session resolved for this request."""
    handle = getattr(request.state, "session", None)
    if handle is None:
        handle = sessions.create_anonymous()
        request.state.session = handle
    return handle


def require_login(session: SessionHandle = Depends(current_session)) -> Identity:
    """
    FastAPI dependency: identity of the logged-in user.

    Raises LoginRequired for anonymous sessions; the app turns that into a
    redirect to /unauthorized before the handler body runs.
    """
    if not session.is_authenticated:
        raise LoginRequired()
    return session.identity
