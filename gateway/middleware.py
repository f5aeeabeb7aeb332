"""Middleware that assigns and propagates a request identifier.

Every incoming HTTP request receives a request identifier. The identifier is
read from the incoming ``X-Request-ID`` header when provided by the client,
or generated server-side (UUID4) otherwise. It is stored on
``request.state`` and in a context variable so logging code running
downstream can access it without passing the value explicitly, and it is
echoed back on the response.
"""

import contextvars
import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")

logger = logging.getLogger("marketplace.http")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that sets and returns a per-request identifier.

    Attributes:
        HEADER (str): Incoming header that may contain a client-provided id.
        RESPONSE_HEADER (str): Header added to outgoing responses.
    """

    HEADER = "x-request-id"
    RESPONSE_HEADER = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(self.HEADER) or str(uuid.uuid4())
        request.state.request_id = rid
        token = REQUEST_ID_CTX.set(rid)
        try:
            response = await call_next(request)
        finally:
            # minimal structured access log
            logger.info("request handled", extra={"path": request.url.path, "method": request.method})
            REQUEST_ID_CTX.reset(token)
        response.headers[self.RESPONSE_HEADER] = rid
        return response
