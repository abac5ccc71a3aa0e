# sfa_portal/middleware/logging.py
import time
import uuid
from typing import Callable, Awaitable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from loguru import logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.time()
        request.state.request_id = request_id

        client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"
        # Body tidak di-log (password, dokumen)
        logger.info(f"RID:{request_id} START {request.method} {request.url.path} Client:{client}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            logger.error(
                f"RID:{request_id} FAILED {request.method} {request.url.path} "
                f"Error:{e} Duration:{process_time:.2f}ms",
                exc_info=True,
            )
            raise

        process_time = (time.time() - start_time) * 1000
        logger.info(
            f"RID:{request_id} END {request.method} {request.url.path} "
            f"Status:{response.status_code} Duration:{process_time:.2f}ms"
        )
        response.headers["X-Request-ID"] = request_id
        return response
