"""Correlation ID middleware."""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CORRELATION_HEADER = "x-correlation-id"
VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation ID (logs, audit entries, response header)."""

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(CORRELATION_HEADER)
        # Client-supplied ids end up in logs and audit rows, so only accept plain tokens
        if incoming and VALID_CORRELATION_ID.match(incoming):
            correlation_id = incoming
        else:
            correlation_id = str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)
        try:
            response: Response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class CorrelationIdFilter(logging.Filter):
    """Expose the current correlation ID to log formatters."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get() or "-"
        return True


def get_correlation_id(request: Request) -> Optional[str]:
    """Correlation ID of the current request (FastAPI dependency)."""
    return getattr(request.state, "correlation_id", None)
