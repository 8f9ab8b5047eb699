"""
Standardized error handling for the newsroom API.

Provides the workflow error taxonomy, exception classes, and response formatting.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


# =============================================================================
# Error Kinds
# =============================================================================

class ErrorKind(str, Enum):
    """Error kinds reported to callers of the workflow."""

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TRANSIENT_STORE_ERROR = "TRANSIENT_STORE_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.TRANSIENT_STORE_ERROR


# =============================================================================
# Error Response Schema
# =============================================================================

@dataclass
class ErrorDetail:
    """Detailed error information."""
    kind: ErrorKind
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "kind": self.kind.value if isinstance(self.kind, ErrorKind) else self.kind,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class ErrorResponse:
    """Standardized error response."""
    error: ErrorDetail
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error.to_dict(),
            "request_id": self.request_id,
        }

    def to_response(self, status_code: int = 400) -> Response:
        return Response(self.to_dict(), status=status_code)


# =============================================================================
# Custom Exceptions
# =============================================================================

class NewsroomException(APIException):
    """Base exception for newsroom workflow errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = ErrorKind.INTERNAL_ERROR
    default_detail = "An error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_detail
        self.error_details = details or {}
        super().__init__(detail=self.message)

    def to_dict(self) -> Dict[str, Any]:
        return ErrorDetail(
            kind=self.kind,
            message=self.message,
            details=self.error_details or None,
        ).to_dict()

    def get_error_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            error=ErrorDetail(
                kind=self.kind,
                message=self.message,
                details=self.error_details or None,
            ),
            request_id=request_id or str(uuid.uuid4()),
        )


class UnauthorizedError(NewsroomException):
    """No authenticated actor."""
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = ErrorKind.UNAUTHORIZED
    default_detail = "Unauthorized"


class PermissionDeniedError(NewsroomException):
    """Authenticated, but the role or ownership check failed."""
    status_code = status.HTTP_403_FORBIDDEN
    kind = ErrorKind.FORBIDDEN
    default_detail = "Permission denied"


class NotFoundError(NewsroomException):
    """Resource not found."""
    status_code = status.HTTP_404_NOT_FOUND
    kind = ErrorKind.NOT_FOUND
    default_detail = "Resource not found"


class InvalidTransitionError(NewsroomException):
    """Action is not legal from the entity's current stage."""
    status_code = status.HTTP_409_CONFLICT
    kind = ErrorKind.INVALID_TRANSITION
    default_detail = "Invalid stage transition"


class PreconditionFailedError(NewsroomException):
    """A required field or relation is missing."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    kind = ErrorKind.PRECONDITION_FAILED
    default_detail = "Precondition failed"


class ValidationError(NewsroomException):
    """Malformed payload."""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = ErrorKind.VALIDATION_ERROR
    default_detail = "Validation failed"


class TransientStoreError(NewsroomException):
    """Persistence failed for infrastructure reasons; safe to retry."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    kind = ErrorKind.TRANSIENT_STORE_ERROR
    default_detail = "Temporary storage failure, please try again"


# =============================================================================
# Exception Handler
# =============================================================================

# Kinds for errors raised by DRF itself, e.g. failed authentication
DRF_STATUS_KINDS = {
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorKind.RATE_LIMITED,
}


def get_request_id(request) -> str:
    """Request ID set by RequestIDMiddleware, or a fresh one."""
    return getattr(request, 'request_id', None) or str(uuid.uuid4())


def _render(kind, message, request_id, status_code, details=None) -> Response:
    return ErrorResponse(
        error=ErrorDetail(kind=kind, message=message, details=details),
        request_id=request_id,
    ).to_response(status_code)


def _unpack_drf_data(data):
    """Split a DRF error payload into (message, details)."""
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail']), None
        return "Validation failed", data
    if isinstance(data, list):
        return (str(data[0]) if data else "Error"), {"errors": data}
    return str(data), None


def newsroom_exception_handler(exc, context):
    """
    DRF exception handler for the newsroom API.

    Renders every error as ``{"error": {kind, message, details?}, "request_id"}``.
    Django and DRF errors are mapped onto the workflow kinds. Anything
    unrecognised becomes an INTERNAL_ERROR.
    """
    request = context.get('request')
    request_id = get_request_id(request) if request is not None else str(uuid.uuid4())

    if isinstance(exc, NewsroomException):
        log = logger.error if exc.kind.retryable else logger.warning
        log(
            f"Workflow error {exc.kind.value}: {exc.message}",
            extra={
                "request_id": request_id,
                "error_kind": exc.kind.value,
                "status_code": exc.status_code,
            }
        )
        return exc.get_error_response(request_id).to_response(exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            message, details = "Validation failed", exc.message_dict
        else:
            message = exc.messages[0] if exc.messages else "Validation failed"
            details = {"errors": exc.messages}
        return _render(ErrorKind.VALIDATION_ERROR, message, request_id, status.HTTP_400_BAD_REQUEST, details)

    if isinstance(exc, Http404):
        return _render(ErrorKind.NOT_FOUND, str(exc) or "Resource not found", request_id, status.HTTP_404_NOT_FOUND)

    response = drf_exception_handler(exc, context)
    if response is not None:
        if response.status_code >= 500:
            kind = ErrorKind.INTERNAL_ERROR
        else:
            kind = DRF_STATUS_KINDS.get(response.status_code, ErrorKind.VALIDATION_ERROR)
        message, details = _unpack_drf_data(response.data)
        rendered = _render(kind, message, request_id, response.status_code, details)
        # Keep WWW-Authenticate and Retry-After
        for header, value in response.items():
            if header in ('WWW-Authenticate', 'Retry-After'):
                rendered[header] = value
        return rendered

    logger.exception(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "request_id": request_id,
            "exception_type": type(exc).__name__,
        }
    )
    return _render(
        ErrorKind.INTERNAL_ERROR,
        "An unexpected error occurred",
        request_id,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
