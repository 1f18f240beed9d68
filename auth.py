"""
Authentication middleware for optional bearer tokens.
"""
from typing import Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config import Config
from utils.logger import app_logger, log_development


def verify_token(token: str) -> Optional[str]:
    """
    Decode a bearer token and return its user id.

    Args:
        token: Encoded JWT signed with Config.JWT_SECRET

    Returns:
        The `userId` claim, or None if the token is invalid, expired or unsigned
    """
    if not Config.JWT_SECRET:
        return None

    try:
        claims = jwt.decode(token, Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        log_development("Bearer token expired")
        return None
    except jwt.InvalidTokenError as e:
        log_development(f"Bearer token rejected: {e}")
        return None

    user_id = claims.get("userId")
    return str(user_id) if user_id else None


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Resolves `Authorization: Bearer <token>` into `request.state.user_id`.

    Never rejects a request: an absent or invalid token leaves `user_id` as None
    and routes decide whether they need an authenticated user.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Attach the caller's user id (or None) before handling the request.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response from next handler
        """
        request.state.user_id = None

        auth_header = request.headers.get("Authorization") or ""
        if auth_header.startswith("Bearer "):
            request.state.user_id = verify_token(auth_header[len("Bearer "):].strip())

        return await call_next(request)


def current_user_id(request: Request) -> Optional[str]:
    """User id resolved by BearerAuthMiddleware, if any."""
    return getattr(request.state, "user_id", None)


def unauthorized_response() -> JSONResponse:
    """Response for routes that need an authenticated user."""
    app_logger.warning("Rejected request without a valid bearer token")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Not authenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )
