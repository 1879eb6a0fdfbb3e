"""
Noteful Backend — Request ID Middleware
========================================

What:  Gives every request a short correlation id, stores it in a ContextVar
       for loggers and error handlers, and echoes it in `X-Request-ID`.

A client-supplied `X-Request-ID` is reused when it looks sane (short,
printable), so a browser error report can be matched to server logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


def _client_request_id(request: Request) -> str:
    rid = request.headers.get("X-Request-ID", "")
    if rid and len(rid) <= MAX_CLIENT_ID_LENGTH and rid.isprintable():
        return rid
    return ""


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = _client_request_id(request) or uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
