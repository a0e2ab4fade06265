"""Error taxonomy for the acta workflow and its HTTP mapping."""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_LINK_ERROR = "Invalid or expired link."


class ActaError(Exception):
    """Base class for workflow errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_content(self) -> dict:
        return {"detail": self.message}


class ValidationError(ActaError):
    """Input rejected; carries the offending field for internal forms."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_content(self) -> dict:
        content = {"detail": self.message}
        if self.field:
            content["field"] = self.field
        return content


class AttachmentValidationError(ValidationError):
    """File rejected by MIME type or size before any I/O."""


class PermissionDenied(ActaError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ActaError):
    status_code = status.HTTP_404_NOT_FOUND


class StateError(ActaError):
    """Transition attempted from a state that does not allow it."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, current_state: Optional[str] = None):
        super().__init__(message)
        self.current_state = current_state


class InvalidLink(ActaError):
    """Signed link failed verification or points at nothing actionable.

    Public surfaces never say which.
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = GENERIC_LINK_ERROR):
        super().__init__(message)


class StorageError(ActaError):
    """Blob store write or read failure."""

    status_code = status.HTTP_502_BAD_GATEWAY


def register_exception_handlers(app: FastAPI):
    """Map workflow errors to JSON responses."""

    @app.exception_handler(ActaError)
    async def handle_acta_error(request: Request, exc: ActaError):
        if isinstance(exc, StorageError):
            logger.error(
                f"Storage failure on {request.url.path}: {exc.message}",
                extra={"correlation_id": getattr(request.state, "correlation_id", None)},
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())
