"""
Logging setup and context-aware log helpers.

Everything the service logs goes through loggers under ``cio``. The helpers
append keyword context as ``key=value`` pairs (company, saga id, product) and
mask credentials first: OAuth tokens, client secrets, API keys and Slack
webhook URLs all pass through these log lines.
"""
import logging
import logging.handlers
import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple

from cio.core.config import settings


class LogCategory(str, Enum):
    """Logger names used across the service."""
    APP = "cio"
    API_REQUESTS = "cio.api_requests"
    ERRORS = "cio.errors"
    DB = "cio.db"
    CLIENTS = "cio.clients"
    SYNC = "cio.sync"
    JOBS = "cio.jobs"


DEFAULT_LOG_LEVEL = logging.INFO
LOG_FILE_NAME = "cio.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MASK = "***MASKED***"

# Substrings of keys whose values never reach a log line
SECRET_KEY_PARTS = (
    "token",
    "secret",
    "password",
    "api_key",
    "apikey",
    "authorization",
    "signature",
    "webhook_url",
    "database_url",
    "broker_url",
)

_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)(?P<user>[^:/@\s]+):[^@/\s]+@")
_SLACK_WEBHOOK = re.compile(r"https://hooks\.slack\.com/services/\S+")
_OPAQUE_TOKEN = re.compile(r"^[A-Za-z0-9._-]{64,}$")

# Chatty third-party loggers
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "celery.app.trace")


def _is_secret_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(part in lowered for part in SECRET_KEY_PARTS)


def mask_secrets(data: Any) -> Any:
    """
    Return ``data`` with credentials masked.

    Dict values are masked by key name; strings lose URL passwords and Slack
    webhook paths; long opaque strings are treated as tokens.
    """
    if isinstance(data, dict):
        return {key: MASK if _is_secret_key(key) else mask_secrets(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [mask_secrets(item) for item in data]
    if not isinstance(data, str):
        return data

    if _OPAQUE_TOKEN.match(data):
        return MASK
    masked = _URL_CREDENTIALS.sub(r"\g<scheme>\g<user>:***@", data)
    return _SLACK_WEBHOOK.sub("https://hooks.slack.com/services/***", masked)


def _resolve_log_level(value: Any) -> Tuple[int, bool]:
    """Level for ``value`` and whether the default had to be used."""
    if isinstance(value, int):
        return value, False
    name = str(value or "").strip().upper()
    if name.isdigit():
        return int(name), False
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level, False
    return DEFAULT_LOG_LEVEL, True


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """
    Configure console and rotating file output for the process.

    Arguments default to the ``LOG_LEVEL`` and ``LOG_DIR`` settings. Calling
    again replaces the handlers installed by an earlier call.
    """
    level, fell_back = _resolve_log_level(log_level or settings.log_level)
    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    console = logging.StreamHandler()
    logfile = logging.handlers.RotatingFileHandler(
        directory / LOG_FILE_NAME,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in (console, logfile):
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger(LogCategory.APP).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    if fell_back:
        logger.warning("Unknown log level %r, using INFO", log_level or settings.log_level)
    logger.info("Logging at %s to %s", logging.getLevelName(level), directory / LOG_FILE_NAME)


def _log(category: LogCategory, level: int, message: str, request_id: Optional[str] = None,
         exc_info: bool = False, **context: Any) -> None:
    if request_id:
        message = f"[{request_id}] {message}"
    if context:
        pairs = ", ".join(f"{key}={value}" for key, value in mask_secrets(context).items())
        message = f"{message} ({pairs})"
    logging.getLogger(category).log(level, message, exc_info=exc_info)


def log_api_request(method: str, path: str, status_code: int, duration_ms: float, request_id: Optional[str] = None):
    _log(LogCategory.API_REQUESTS, logging.INFO, f"{method} {path} - {status_code} - {duration_ms}ms", request_id)


def log_info(message: str, request_id: Optional[str] = None, **context):
    _log(LogCategory.APP, logging.INFO, message, request_id, **context)


def log_debug(message: str, request_id: Optional[str] = None, **context):
    _log(LogCategory.APP, logging.DEBUG, message, request_id, **context)


def log_warning(message: str, request_id: Optional[str] = None, **context):
    _log(LogCategory.APP, logging.WARNING, message, request_id, **context)


def log_error(error: Exception | str, request_id: Optional[str] = None, **context):
    """
    Log an error on the ``cio.errors`` logger.

    Args:
        error: Exception or message; an exception also logs the active traceback
        request_id: Request the error belongs to
        **context: Extra ``key=value`` context, e.g. ``company``
    """
    _log(
        LogCategory.ERRORS,
        logging.ERROR,
        f"Error: {error}",
        request_id,
        exc_info=isinstance(error, Exception),
        **context,
    )
