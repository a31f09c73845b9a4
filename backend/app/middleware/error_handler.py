"""
Last-resort error handling middleware.

Pure ASGI (not BaseHTTPMiddleware) so the yield-based get_db_session()
dependency still commits and rolls back normally.
"""
import json

from fastapi import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.logging import get_logger

logger = get_logger(__name__)


class ErrorHandlerMiddleware:
    """
    Turns any exception that escaped the routers into a JSON 500 in the
    same ``{"success": false, "message": ...}`` shape as domain errors.

    HTTPException and domain errors never get here; FastAPI's exception
    handlers render them first.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except HTTPException:
            raise
        except Exception as e:
            path = scope.get("path", "unknown")
            if started:
                # Too late to replace the response
                logger.exception("Unhandled exception after response started", error=str(e), path=path)
                raise

            logger.exception("Unhandled exception", error=str(e), path=path)

            request_id = scope.get("state", {}).get("request_id")
            body = json.dumps({
                "success": False,
                "message": "Internal server error",
                "request_id": request_id,
            }).encode("utf-8")

            await send({
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"content-length", str(len(body)).encode()),
                ],
            })
            await send({"type": "http.response.body", "body": body})
