"""Error handling middleware.

Route handlers raise ``HTTPException`` for request-level problems (401, 403,
404, 409...). Services raise ``ServiceError`` subclasses for failures of the
collaborators they wrap (blob storage, AI provider). This middleware turns
those, and anything unexpected, into a JSON body with a short error id that
also appears in the logs.

Usage:
    from tempo.middleware.error_handling import setup_error_handling, StorageError

    setup_error_handling(app, debug=settings.DEBUG)
    raise StorageError("Blob upload failed", details={"status": 503})
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service errors."""

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class StorageError(ServiceError):
    """Audio could not be stored or read back."""

    status_code = 502
    error_code = "storage_error"


class AudioNotFoundError(ServiceError):
    status_code = 404
    error_code = "audio_not_found"


def _error_body(error_code: str, message: str, error_id: str, details: Optional[dict] = None) -> dict:
    return {
        "error": error_code,
        "message": message,
        "error_id": error_id,
        "details": details,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        error_id = str(uuid4())[:8]

        try:
            return await call_next(request)

        except HTTPException:
            raise

        except ServiceError as e:
            logger.error(
                "[%s] %s on %s %s: %s",
                error_id, e.error_code, request.method, request.url.path, e.message,
            )
            return JSONResponse(
                status_code=e.status_code,
                content=_error_body(e.error_code, e.message, error_id, e.details if self.debug else None),
            )

        except Exception as e:
            logger.error(
                "[%s] Unhandled error on %s %s: %s: %s\n%s",
                error_id, request.method, request.url.path, type(e).__name__, e, traceback.format_exc(),
            )
            details = None
            if self.debug:
                details = {"exception": type(e).__name__, "message": str(e)}
            return JSONResponse(
                status_code=500,
                content=_error_body("internal_server_error", "An unexpected error occurred", error_id, details),
            )


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info("Error handling middleware enabled (debug=%s)", debug)
