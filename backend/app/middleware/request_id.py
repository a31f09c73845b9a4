"""
Request ID middleware for tracing.

Pure ASGI so it does not interfere with yield-based dependencies.
"""
import uuid
from typing import Optional

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = b"x-request-id"
MAX_REQUEST_ID_LENGTH = 128


def _incoming_request_id(scope: Scope) -> Optional[str]:
    for name, value in scope.get("headers", []):
        if name == REQUEST_ID_HEADER:
            request_id = value.decode("latin-1").strip()
            if request_id and len(request_id) <= MAX_REQUEST_ID_LENGTH:
                return request_id
    return None


class RequestIdMiddleware:
    """
    Tags each request with an id: the caller's ``X-Request-ID`` when it is
    usable, a fresh UUID otherwise. The id is bound into the structlog
    context, stored on ``request.state`` and echoed in the response.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or str(uuid.uuid4())

        structlog.contextvars.bind_contextvars(request_id=request_id)
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_request_id)
