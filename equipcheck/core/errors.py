"""Domain error taxonomy and the HTTP envelope every failure is rendered in.

Registry and engine code raise the ``DomainError`` subclasses below; the
handlers at the bottom of the module turn them (and framework errors) into a
uniform ``{"code", "message", "details"}`` JSON body so clients can show a
short title plus description for any failure.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class DomainError(Exception):
    code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request could not be completed"

    def __init__(self, message: str | None = None, details: Any | None = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class PermissionDenied(DomainError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have permission to perform this action"


class ValidationFailed(DomainError):
    code = "validation_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    message = "Validation failed"

    def __init__(self, errors: dict[str, str], message: str | None = None) -> None:
        self.errors = dict(errors)
        super().__init__(message, details={"fields": self.errors})

    def summary(self) -> str:
        return "; ".join(f"{field}: {text}" for field, text in self.errors.items())


class DuplicateBarcode(DomainError):
    code = "duplicate_barcode"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, barcode: str) -> None:
        self.barcode = barcode
        super().__init__(
            f"An equipment item with barcode '{barcode}' already exists",
            details={"barcode": barcode},
        )


class SectorInUse(DomainError):
    code = "sector_in_use"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"Sector is assigned to {count} equipment item(s); reassign them before deleting",
            details={"count": count},
        )


class NotFound(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class StoreUnavailable(DomainError):
    code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "The data store could not complete the request"


class InvalidHeader(DomainError):
    code = "invalid_header"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "CSV header is missing required columns: " + ", ".join(self.missing),
            details={"missing": self.missing},
        )


class ProfileMissing(DomainError):
    """Authenticated identity without a profile record; the session must end."""

    code = "profile_missing"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "No profile is registered for this account; you have been signed out"


class ConfirmationRequired(DomainError):
    code = "confirmation_required"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Destructive operations must be confirmed with confirm=true"


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def domain_exception_handler(request: Request, exc: DomainError):
    headers = None
    if isinstance(exc, ProfileMissing):
        headers = {"WWW-Authenticate": 'Bearer error="invalid_token"'}
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
        )
    raise exc
