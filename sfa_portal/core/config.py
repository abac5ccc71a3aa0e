# sfa_portal/core/config.py
import os
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# --- Muat file .env JIKA ADA ---
project_root = Path(__file__).resolve().parent.parent.parent
dotenv_path = project_root / '.env'
if dotenv_path.is_file():
    logger.info(f"Loading environment variables from: {dotenv_path}")
    load_dotenv(dotenv_path=dotenv_path, override=False)
else:
    logger.debug(f".env file not found at {dotenv_path}. Relying on system environment variables.")


class InterceptHandler(logging.Handler):
    """Routes records from the standard logging module into Loguru."""
    def emit(self, record: logging.LogRecord) -> None:
        try: level = logger.level(record.levelname).name
        except ValueError: level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    """Konfigurasi Loguru untuk aplikasi."""
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    log_file_path = Path(os.getenv("LOG_FILE_PATH", "logs/sfa_portal_{time:YYYY-MM-DD}.log"))
    log_rotation = os.getenv("LOG_ROTATION", "1 day")
    log_retention = os.getenv("LOG_RETENTION", "14 days")
    log_serialize = os.getenv("LOG_SERIALIZE", "False").lower() == "true"

    logger.remove()  # Hapus handler default
    logger.add(sys.stderr, level=log_level_name, format=log_format, colorize=True)

    try:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file_path,
            level=log_level_name,
            format=log_format,
            rotation=log_rotation,
            retention=log_retention,
            serialize=log_serialize,
            enqueue=True,
            backtrace=True,
            diagnose=False,
            encoding="utf-8"
        )
        logger.info(f"File logging enabled at: {log_file_path}")
    except Exception as e:
        logger.error(f"Failed to setup file logging at {log_file_path}: {e}")

    # --- Intercept Log Standar ---
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(("uvicorn", "fastapi", "starlette")):
            existing_logger = logging.getLogger(name)
            existing_logger.handlers = [InterceptHandler()]
            existing_logger.propagate = False

    logger.info(f"Loguru logging setup complete. Level: {log_level_name}")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}. Using default: {default}.")
        return default


# --- JWT Configuration ---
SECRET_KEY: str = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    logger.critical("FATAL: SECRET_KEY environment variable is not set.")
    raise ValueError("SECRET_KEY environment variable is not set.")

ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 30)
BCRYPT_ROUNDS: int = _int_env("BCRYPT_ROUNDS", 12)

# --- Database Configuration ---
MONGODB_URL: str = os.getenv("MONGODB_URL")
if not MONGODB_URL:
    logger.critical("FATAL: MONGODB_URL environment variable is not set.")
    raise ValueError("MONGODB_URL environment variable is not set.")

_default_db_name = "sfa_portal_db"
_path_part = MONGODB_URL.split("://", 1)[-1].partition("/")[2].split("?")[0]
if _path_part:
    _default_db_name = _path_part
DATABASE_NAME: str = os.getenv("DATABASE_NAME", _default_db_name)

# --- SFA ID ---
SFA_ID_PREFIX: str = os.getenv("SFA_ID_PREFIX", "SFA")
SFA_ID_WIDTH: int = _int_env("SFA_ID_WIDTH", 4)

# --- Beneficiary workflow ---
VOTE_MAX_ATTEMPTS: int = max(1, _int_env("VOTE_MAX_ATTEMPTS", 5))

# --- Blob storage ---
UPLOAD_DIR: Path = Path(os.getenv("UPLOAD_DIR", "uploads"))
FILES_BASE_URL: str = os.getenv("FILES_BASE_URL", "/files").rstrip("/")
MAX_UPLOAD_BYTES: int = _int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

# --- Rate limiting ---
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false"

logger.info(f"JWT Algorithm: {ALGORITHM}")
logger.info(f"Access Token Expire Minutes: {ACCESS_TOKEN_EXPIRE_MINUTES}")
logger.info(f"Database Name: {DATABASE_NAME}")
