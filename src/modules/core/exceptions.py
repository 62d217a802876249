"""Shared domain exception taxonomy and the DRF exception handler.

Module exceptions subclass one of the base classes below.  Views let them
propagate; ``envelope_exception_handler`` turns them (and DRF / Pydantic
errors) into the ``{"success": false, ...}`` response envelope.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for business-rule violations raised by the Service Layer."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_message = "Request could not be processed."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class BusinessRuleError(DomainError):
    code = "business_rule"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found."


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Resource already exists."


class PermissionDeniedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Unauthorized access"


class RateLimitExceeded(exceptions.Throttled):
    """Throttled carrying the configured, human readable message."""

    def __init__(self, wait: float, message: str) -> None:
        super().__init__(wait=wait)
        self.message = message


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------


def error_body(
    message: str,
    code: str,
    errors: Optional[List[Dict[str, str]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body


def flatten_errors(detail: Any, prefix: str = "") -> List[Dict[str, str]]:
    """Flatten nested DRF validation details into ``[{field, message}]``."""
    if isinstance(detail, dict):
        flat: List[Dict[str, str]] = []
        for key, value in detail.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            flat.extend(flatten_errors(value, field))
        return flat
    if isinstance(detail, list):
        if all(not isinstance(item, (dict, list)) for item in detail):
            return [
                {"field": prefix or "non_field_errors", "message": str(item)}
                for item in detail
            ]
        flat = []
        for index, item in enumerate(detail):
            flat.extend(flatten_errors(item, f"{prefix}.{index}" if prefix else str(index)))
        return flat
    return [{"field": prefix or "non_field_errors", "message": str(detail)}]


def _pydantic_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "non_field_errors",
            "message": err["msg"].removeprefix("Value error, "),
        }
        for err in exc.errors()
    ]


def _auth_code(exc: exceptions.APIException) -> str:
    if isinstance(exc, exceptions.NotAuthenticated):
        return "missing"
    codes = exc.get_codes()
    return codes if isinstance(codes, str) else "invalid"


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------


def envelope_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    """Render every failure as the error envelope.

    Unexpected exceptions are logged with their traceback and answered with a
    generic 500 so no internals leak to the client.
    """
    view = context.get("view")
    log = logger.bind(view=view.__class__.__name__ if view else None)

    if isinstance(exc, DomainError):
        log.info(
            "request.domain_error",
            reason=exc.code,
            status_code=exc.status_code,
            error=exc.message,
        )
        return Response(error_body(exc.message, exc.code), status=exc.status_code)

    if isinstance(exc, PydanticValidationError):
        return Response(
            error_body("Validation failed", "validation_error", _pydantic_errors(exc)),
            status=status.HTTP_400_BAD_REQUEST,
        )

    # rest_framework.views pulls in the auth classes, which import this module
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)
    if response is None:
        log.exception("request.unhandled_error", error_type=type(exc).__name__)
        return Response(
            error_body("Internal server error", "internal_error"),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        response.data = error_body(
            "Validation failed", "validation_error", flatten_errors(exc.detail)
        )
    elif isinstance(exc, exceptions.Throttled):
        retry_after = math.ceil(exc.wait) if exc.wait is not None else None
        message = getattr(exc, "message", "Too many requests. Please try again later.")
        response.data = {"success": False, "error": message, "code": "rate_limited"}
        if retry_after is not None:
            response.data["retryAfter"] = retry_after
        log.warning("request.rate_limited", retry_after=retry_after)
    elif isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        response.data = error_body(str(exc.detail), _auth_code(exc))
    elif isinstance(exc, exceptions.APIException):
        codes = exc.get_codes()
        response.data = error_body(
            str(exc.detail) if not isinstance(exc.detail, (dict, list)) else "Request failed",
            codes if isinstance(codes, str) else exc.default_code,
        )
    else:
        # Http404 / django PermissionDenied are converted by DRF
        response.data = error_body(
            "Not found" if response.status_code == 404 else "Unauthorized access",
            "not_found" if response.status_code == 404 else "forbidden",
        )
    return response
