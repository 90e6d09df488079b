"""HTTP middleware: engine errors to status codes, request ids and timing."""

import time
import uuid
from datetime import datetime
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    APIError,
    DeadlockError,
    ExecutionCancelledError,
    ExecutorRegistryError,
    GraphValidationError,
    StorageError,
    UnknownModuleError,
    WorkflowEngineError,
    create_error_response,
)
from .logging import get_logger, set_logging_context, clear_logging_context


logger = get_logger(__name__)


def get_status_code_for_error(error: WorkflowEngineError) -> int:
    """Determine the HTTP status code for a workflow engine error."""
    if isinstance(error, APIError):
        return error.status_code
    if isinstance(error, GraphValidationError):
        return 400
    if isinstance(error, (DeadlockError, ExecutionCancelledError)):
        return 409
    if isinstance(error, UnknownModuleError):
        return 404
    if isinstance(error, ExecutorRegistryError):
        return 400
    if isinstance(error, StorageError):
        if "not found" in error.message.lower():
            return 404
        return 500
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, log it, and turn escaped engine errors into JSON responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        set_logging_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown"
        )

        try:
            logger.info(f"Request started: {request.method} {request.url.path}")
            if request.query_params:
                logger.debug(f"Query params: {dict(request.query_params)}")

            response = await call_next(request)

            duration = time.perf_counter() - start_time
            logger.info(
                f"Request completed: {request.method} {request.url.path} - "
                f"Status: {response.status_code} - Duration: {duration:.3f}s"
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except WorkflowEngineError as e:
            duration = time.perf_counter() - start_time

            run_id = e.context.get("run_id")
            run_note = f" (run {run_id})" if run_id else ""
            logger.warning(
                f"Workflow engine error: {request.method} {request.url.path} - "
                f"Error: {e.error_code}{run_note} - Duration: {duration:.3f}s",
                extra={"extra_fields": {"error_details": e.to_dict()}}
            )

            return JSONResponse(
                status_code=get_status_code_for_error(e),
                content=create_error_response(e),
                headers={"X-Request-ID": request_id}
            )

        except Exception as e:
            duration = time.perf_counter() - start_time

            logger.error(
                f"Unexpected error: {request.method} {request.url.path} - "
                f"Error: {str(e)} - Duration: {duration:.3f}s",
                exc_info=True
            )

            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred",
                    "details": {
                        "error_type": type(e).__name__,
                        "timestamp": datetime.utcnow().isoformat()
                    },
                    "request_id": request_id
                },
                headers={"X-Request-ID": request_id}
            )

        finally:
            clear_logging_context()


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """Adds X-Response-Time and warns about requests slower than the threshold."""

    def __init__(self, app, slow_request_threshold: float = 5.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        if duration > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} - "
                f"Duration: {duration:.3f}s (threshold: {self.slow_request_threshold}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response
