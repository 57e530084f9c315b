"""
ASGI middleware that tags every request with an id and logs its outcome.

The id is taken from an incoming ``x-request-id`` header when the caller sent
one, otherwise generated. It is echoed back on the response and kept in
``request_id_ctx`` so log lines and error bodies can carry it.
"""
import json
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from cio.core.logging_config import log_api_request, log_error, log_warning, mask_secrets

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="unknown")
request_path_ctx: ContextVar[str] = ContextVar("request_path", default="unknown")

REQUEST_ID_HEADER = b"x-request-id"
SLOW_REQUEST_MS = 10000
MAX_LOGGED_BODY = 1000


def _masked_body(body: bytes) -> str:
    text = body[:MAX_LOGGED_BODY].decode("utf-8", errors="replace")
    try:
        return json.dumps(mask_secrets(json.loads(text)))
    except ValueError:
        return mask_secrets(text)


def _incoming_request_id(scope) -> Optional[str]:
    for name, value in scope.get("headers", []):
        if name.lower() == REQUEST_ID_HEADER:
            return value.decode("latin-1")[:64] or None
    return None


class RequestLoggingMiddleware:
    """Logs method, path, status and duration; client errors also log the masked body."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or str(uuid.uuid4())
        method = scope.get("method", "")
        path = scope.get("path", "/")
        request_id_ctx.set(request_id)
        request_path_ctx.set(path)

        started = time.monotonic()
        status_code = 500
        error_body = b""

        async def send_with_request_id(message):
            nonlocal status_code, error_body
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                message["headers"] = [*message.get("headers", []), (REQUEST_ID_HEADER, request_id.encode())]
            elif message["type"] == "http.response.body" and 400 <= status_code < 500:
                error_body += message.get("body", b"")
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception as exc:
            log_error(exc, request_id=request_id, method=method, path=path)
            raise
        finally:
            duration_ms = round((time.monotonic() - started) * 1000, 2)
            if duration_ms >= SLOW_REQUEST_MS:
                log_warning("Slow request", request_id=request_id, path=path, duration_ms=duration_ms)
            if error_body:
                log_warning(
                    f"{method} {path} returned {status_code}",
                    request_id=request_id,
                    body=_masked_body(error_body),
                )
            log_api_request(method, path, status_code, duration_ms, request_id=request_id)
