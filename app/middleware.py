"""
Response normalization — the single place where outcomes become responses.

Every request passes through an ordered chain:

1. Request validation failures are reclassified as ``InvariantError``.
2. ``ClientError`` subclasses become ``{"status": "fail", "message": ...}``
   with the status code of their class.
3. Any other exception is logged with its traceback and becomes
   ``{"status": "error", "message": <configured generic text>}`` with 500.
4. A 2xx JSON response whose body says ``"status": "fail"`` is rewritten to
   404.  Handlers should raise ``NotFoundError`` instead; the rewrite only
   catches stragglers and logs each one.
5. Everything else passes through untouched.
"""
import json
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.config import settings
from app.exceptions import ClientError, InvariantError

logger = logging.getLogger(__name__)


def render_error(exc: Exception, server_error_message: str = settings.SERVER_ERROR_MESSAGE) -> JSONResponse:
    """Map a raised failure onto the wire contract."""
    if isinstance(exc, ClientError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "fail", "message": exc.message},
        )
    logger.error("Unhandled %s", type(exc).__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": server_error_message},
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request payload"


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return render_error(InvariantError(_describe_validation_error(exc)))


def _is_json_success(message: Message) -> bool:
    if not 200 <= message["status"] < 300:
        return False
    for name, value in message.get("headers", []):
        if name.lower() == b"content-type":
            return value.startswith(b"application/json")
    return False


def _is_fail_envelope(body: bytes) -> bool:
    try:
        payload = json.loads(body)
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("status") == "fail"


# ---------------------------------------------------------------------------
# Middleware (pure ASGI, like the rest of the stack)
# ---------------------------------------------------------------------------

class ResponseNormalizerMiddleware:
    """
    Pure ASGI middleware applying steps 2-4 of the chain above.

    It sits inside Starlette's ``ServerErrorMiddleware``, so unhandled
    exceptions reach it before the framework's own 500 page.  Successful JSON
    responses are buffered so the fail-envelope check can still change the
    status line; all other responses stream through unchanged.
    """

    def __init__(self, app: ASGIApp, server_error_message: str = settings.SERVER_ERROR_MESSAGE) -> None:
        self.app = app
        self.server_error_message = server_error_message

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False
        held_start: Message | None = None
        held_body: list[bytes] = []

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started, held_start
            if message["type"] == "http.response.start":
                response_started = True
                if _is_json_success(message):
                    held_start = message
                    return
            elif message["type"] == "http.response.body" and held_start is not None:
                held_body.append(message.get("body", b""))
                if message.get("more_body", False):
                    return
                body = b"".join(held_body)
                start = held_start
                held_start = None
                if _is_fail_envelope(body):
                    logger.warning(
                        "Handler for %s %s returned a fail envelope with status %d, rewriting to 404",
                        scope.get("method"),
                        scope.get("path"),
                        start["status"],
                    )
                    start = {**start, "status": 404}
                await send(start)
                await send({"type": "http.response.body", "body": body})
                return
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            response = render_error(exc, self.server_error_message)
            await response(scope, receive, send)


def install_response_normalizer(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_middleware(
        ResponseNormalizerMiddleware,
        server_error_message=settings.SERVER_ERROR_MESSAGE,
    )
