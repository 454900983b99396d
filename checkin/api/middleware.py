"""Pure ASGI middleware for the check-in API.

Two layers, both raw ASGI so the CSV download streams through untouched:

- ``CheckinRequestMiddleware`` wraps every HTTP request: request id and
  timing headers, browser hardening headers, a structured ``internal_error``
  body for unhandled exceptions, and one JSON access line that records which
  store mode (offline / online / reconnecting) served the request.
- ``RequestBodyLimitMiddleware`` refuses oversized registration or config
  bodies with ``payload_too_large`` before they are read.
"""

import json
import logging
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from checkin.config import get_settings

from .errors import ErrorCode, error_response

logger = logging.getLogger(__name__)

# One JSON object per request; formatting comes from the lifespan's basicConfig.
access_logger = logging.getLogger("checkin.access")

_HARDENING_HEADERS = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"strict-origin-when-cross-origin"),
]


async def _send_error(send: Send, status: int, code: ErrorCode, message: str) -> None:
    payload = json.dumps(error_response(code, message)).encode()
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(payload)).encode()),
                *_HARDENING_HEADERS,
            ],
        }
    )
    await send({"type": "http.response.body", "body": payload})


def _store_mode(scope: Scope) -> str | None:
    """Connection mode of the app's controller, if the lifespan installed one."""
    app = scope.get("app")
    controller = getattr(getattr(app, "state", None), "controller", None)
    mode = getattr(controller, "mode", None)
    return getattr(mode, "value", None)


class CheckinRequestMiddleware:
    """Request envelope: ids, headers, error body and access line."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(b"x-request-id", b"").decode() or uuid.uuid4().hex[:8]
        started = time.monotonic()
        status_code: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                elapsed_ms = (time.monotonic() - started) * 1000
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-id", request_id.encode()),
                    (b"x-response-time-ms", f"{elapsed_ms:.1f}".encode()),
                    *_HARDENING_HEADERS,
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            if status_code is None:
                status_code = 500
                await _send_error(
                    send, 500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred."
                )
        finally:
            access_logger.info(
                json.dumps(
                    {
                        "request_id": request_id,
                        "method": scope.get("method"),
                        "path": scope.get("path"),
                        "status": status_code,
                        "mode": _store_mode(scope),
                        "duration_ms": round((time.monotonic() - started) * 1000, 1),
                    }
                )
            )


class RequestBodyLimitMiddleware:
    """Reject requests whose declared Content-Length exceeds MAX_REQUEST_BODY_SIZE."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self.max_body_size = get_settings().MAX_REQUEST_BODY_SIZE

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            raw_length = dict(scope.get("headers", [])).get(b"content-length", b"0")
            try:
                length = int(raw_length)
            except ValueError:
                length = 0
            if length > self.max_body_size:
                logger.warning(
                    "Rejected %s %s: %d-byte body over the %d-byte limit",
                    scope.get("method"),
                    scope.get("path"),
                    length,
                    self.max_body_size,
                )
                await _send_error(
                    send, 413, ErrorCode.PAYLOAD_TOO_LARGE, "Request body too large."
                )
                return
        await self.app(scope, receive, send)
