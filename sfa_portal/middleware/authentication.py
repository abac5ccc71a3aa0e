# sfa_portal/middleware/authentication.py
from typing import Optional, Set, Callable, Awaitable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp
from loguru import logger
from jose import JWTError

from sfa_portal.core.security import decode_access_token


# Path yang TIDAK memerlukan autentikasi
PUBLIC_PATHS: Set[str] = {
    "/",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/health",
    "/health/db",
    "/api/v1/auth/token",
    "/api/v1/auth/register",
}

# Callable: identitas dipasang jika ada, fungsi sendiri yang menolak anonim
OPTIONAL_AUTH_PREFIXES = ("/api/v1/functions/",)


def is_public_path(path: str) -> bool:
    """Checks if the given path matches or starts with any public path prefix."""
    if path in PUBLIC_PATHS:
        return True
    if path.startswith("/docs") or path.startswith("/redoc"):
        return True
    if path.startswith("/health"):
        return True
    return False


def is_optional_auth_path(path: str) -> bool:
    return path.startswith(OPTIONAL_AUTH_PREFIXES)


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": detail, "kind": "unauthenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        request_id = getattr(request.state, 'request_id', 'N/A')

        if is_public_path(path):
            logger.debug(f"RID:{request_id} Public path accessed: {path}. Skipping auth.")
            return await call_next(request)

        optional = is_optional_auth_path(path)
        authorization: Optional[str] = request.headers.get("Authorization")
        scheme, token = get_authorization_scheme_param(authorization or "")
        if not authorization or scheme.lower() != "bearer" or not token:
            if optional:
                logger.debug(f"RID:{request_id} Anonymous call to {path}.")
                return await call_next(request)
            logger.warning(f"RID:{request_id} Auth failed: No valid Bearer token for protected path {path}.")
            return _unauthorized("Not authenticated")

        try:
            uid = decode_access_token(token)
        except JWTError as e:
            logger.warning(f"RID:{request_id} Auth failed: Invalid token for path {path}. Error: {e}")
            if optional:
                return await call_next(request)
            return _unauthorized(f"Invalid token: {str(e)}")

        # uid dipakai dependensi get_caller_uid
        request.state.uid = uid
        logger.debug(f"RID:{request_id} Auth successful for uid '{uid}' accessing {path}.")
        return await call_next(request)
