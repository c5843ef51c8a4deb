import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import (
    AllocationValidationError,
    LocationNotFoundError,
    SessionStateError,
    StaleAllocationError,
)
from ...utils.logging import setup_allocation_logging

logger = setup_allocation_logging("allocation_service_error_handler")


def _correlation_id(request: Request) -> str:
    return (
        request.headers.get("X-Correlation-ID")
        or getattr(request.state, "correlation_id", None)
        or "unknown"
    )


class AllocationServiceErrorHandler:
    """Class to setup error handling for the Allocation Service."""

    @staticmethod
    def setup_error_handlers(app: FastAPI) -> None:
        """Setup error handlers for the FastAPI application."""

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(  # type: ignore
            request: Request, exc: StarletteHTTPException
        ) -> JSONResponse:
            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=exc.status_code,
                error_type="http_error",
                message=str(exc.detail),
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(  # type: ignore
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            """Handle request validation errors."""

            error_details: list[dict[str, str]] = []
            for error in exc.errors():
                error_details.append(
                    {
                        "field": ".".join(str(loc) for loc in error["loc"]),
                        "message": error["msg"],
                        "type": error["type"],
                    }
                )

            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=422,
                error_type="validation_error",
                message="Request validation failed",
                details={"validation_errors": error_details},
            )

        @app.exception_handler(AllocationValidationError)
        async def allocation_validation_handler(  # type: ignore
            request: Request, exc: AllocationValidationError
        ) -> JSONResponse:
            """Commit refused; nothing was written."""

            details: Dict[str, Any] = {
                "reasons": exc.reasons,
                "missing_images": exc.missing_images,
            }
            if isinstance(exc, StaleAllocationError):
                details["requested"] = exc.requested
                details["available"] = exc.available

            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=422,
                error_type="allocation_validation_error",
                message=str(exc),
                details=details,
            )

        @app.exception_handler(LocationNotFoundError)
        async def location_not_found_handler(  # type: ignore
            request: Request, exc: LocationNotFoundError
        ) -> JSONResponse:
            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=404,
                error_type="location_not_found",
                message=str(exc),
                details={"location_id": exc.location_id},
            )

        @app.exception_handler(SessionStateError)
        async def session_state_handler(  # type: ignore
            request: Request, exc: SessionStateError
        ) -> JSONResponse:
            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=409,
                error_type="session_state_error",
                message=str(exc),
            )

        @app.exception_handler(ValueError)
        async def value_error_handler(  # type: ignore
            request: Request, exc: ValueError
        ) -> JSONResponse:
            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=400,
                error_type="value_error",
                message=str(exc),
                details={"exception_type": "ValueError"},
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(  # type: ignore
            request: Request, exc: Exception
        ) -> JSONResponse:
            """Handle all uncaught exceptions."""

            logger.error(
                "Unhandled exception occurred",
                extra={
                    "correlation_id": _correlation_id(request),
                    "path": request.url.path,
                    "method": request.method,
                    "exception_type": type(exc).__name__,
                    "exception_message": str(exc),
                    "traceback": traceback.format_exc(),
                    "event_type": "unhandled_exception",
                },
                exc_info=True,
            )

            return AllocationServiceErrorHandler._create_error_response(
                request=request,
                status_code=500,
                error_type="internal_server_error",
                message="An internal server error occurred",
                details={"exception_type": type(exc).__name__},
            )

    @staticmethod
    def _create_error_response(
        request: Request,
        status_code: int,
        error_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""

        correlation_id = _correlation_id(request)

        error_response: Dict[str, Any] = {
            "error": {
                "type": error_type,
                "message": message,
                "correlation_id": correlation_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "method": request.method,
            }
        }

        if details:
            error_response["error"]["details"] = details

        if status_code < 500:
            logger.warning(
                f"Client error: {error_type}",
                extra={
                    "correlation_id": correlation_id,
                    "status_code": status_code,
                    "error_type": error_type,
                    "path": request.url.path,
                    "method": request.method,
                    "event_type": "client_error",
                },
            )

        return JSONResponse(status_code=status_code, content=error_response)


def setup_allocation_error_handling(app: FastAPI) -> None:
    """Setup error handling for the Allocation Service."""

    AllocationServiceErrorHandler.setup_error_handlers(app)

    logger.info(
        "Allocation Service error handling configured",
        extra={"event_type": "error_handler_setup"},
    )
