# sfa_portal/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status as fastapi_status, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger

from sfa_portal.core.config import setup_logging, UPLOAD_DIR, FILES_BASE_URL
from sfa_portal.core.errors import InvalidArgument, PortalError
from sfa_portal.core.rate_limiter import get_rate_limiter, rate_limit_exception_handler
from sfa_portal.middleware.logging import RequestLoggingMiddleware
from sfa_portal.middleware.authentication import AuthMiddleware, is_optional_auth_path
from sfa_portal.db.database import init_db, ping_database
from sfa_portal.api.v1.api import api_router_v1


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application startup...")
    await init_db()
    logger.info("Database initialized.")
    yield
    logger.info("Application shutdown...")


app = FastAPI(
    title="SFA Portal API",
    description="Member registration, beneficiary approvals and founder account tooling.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- KONFIGURASI MIDDLEWARE ---

# 1. Error Handling
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{type(exc).__name__} ({exc.kind.value}) on {request.url.path}: {exc.message} {exc.details or ''}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.warning(f"Validation Error on {request.url.path}: {exc.errors()}")
    if is_optional_auth_path(request.url.path):
        # Callable selalu membalas dengan kind dari ErrorKind
        error = InvalidArgument("Request payload is malformed.", details={"errors": jsonable_errors(exc)})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
    return JSONResponse(
        status_code=fastapi_status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation Error", "errors": jsonable_errors(exc)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled Exception: {exc}", exc_info=True)
    return JSONResponse(status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "An internal server error occurred."})


def jsonable_errors(exc: ValidationError) -> list:
    # ctx pada error pydantic v2 bisa berisi objek exception
    return jsonable_encoder([{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()])


# 2. Authentication Middleware (dijalankan setelah logging, request_id sudah ada)
app.add_middleware(AuthMiddleware)

# 3. Request Logging Middleware
app.add_middleware(RequestLoggingMiddleware)

# 4. Rate Limiter State (untuk decorator @limiter.limit)
app.state.limiter = get_rate_limiter()

# 5. GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=500)

# --- END MIDDLEWARE ---

app.include_router(api_router_v1)

# Dokumen upload, dilindungi AuthMiddleware
app.mount(FILES_BASE_URL, StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="files")


@app.get("/")
async def read_root():
    return {"message": "Welcome to the SFA Portal API!"}


@app.get("/health/db")
async def ping_mongodb():
    try:
        await ping_database()
        return {"status": "success", "message": "MongoDB connection is healthy."}
    except PyMongoError as e:
        logger.error(f"MongoDB ping failed: {e}")
        raise HTTPException(status_code=503, detail="MongoDB connection failed.")
