"""Request ID middleware: binds X-Request-ID to the logging context.

An incoming ``X-Request-ID`` header is reused, otherwise a UUID4 is generated.
The value is echoed back on the response and picked up by ``RequestIdFilter``.
"""

from __future__ import annotations

import uuid
from typing import Callable, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware:
    def __init__(self, app: ASGIApp, *, set_request_id: Callable[[Optional[str]], None]) -> None:
        self.app = app
        self.set_request_id = set_request_id

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:  # pragma: no cover
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return
        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope.get("headers", [])}
        rid = headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        self.set_request_id(rid)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].append((REQUEST_ID_HEADER.encode("latin-1"), rid.encode("latin-1")))
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            self.set_request_id(None)
