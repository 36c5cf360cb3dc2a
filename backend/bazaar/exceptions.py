"""
Bazaar Backend — Error Variants
================================

What:  A closed set of error kinds produced at the source of each failure.
How:   Every application exception carries an ErrorKind. The error classifier
       (bazaar.middleware.errors) switches on that kind instead of probing
       loosely-typed attributes of arbitrary exceptions.
Who:   Raised by guards, services and gateways; consumed by the classifier.

Error Hierarchy:
    BazaarError (base, UNCLASSIFIED)
    ├── ValidationError     → VALIDATION   (400)
    ├── UnauthorizedError   → UNAUTHORIZED (401)
    ├── NotFoundError       → NOT_FOUND    (404)
    ├── UpstreamError       → UPSTREAM     (upstream status, default 500)
    └── PersistenceError    → PERSISTENCE  (400)

    ShortCircuit is not an error kind: guards raise it to answer a request
    directly with {success: false, message}.

Library exceptions that escape their boundary untranslated (httpx, SQLAlchemy)
are converted by type in from_exception().
"""

import enum
from typing import Any, Dict, List, Optional, Union

import httpx
from sqlalchemy.exc import DBAPIError, SQLAlchemyError


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    PERSISTENCE = "persistence"
    UNCLASSIFIED = "unclassified"


class BazaarError(Exception):
    """
    Base exception for all Bazaar application errors.

    Attributes:
        message:  Error description. Safe for 4xx responses; hidden in 5xx
                  responses outside development.
        context:  Additional debug info (logged but NOT returned to client)
    """

    kind: ErrorKind = ErrorKind.UNCLASSIFIED

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BazaarError):
    """
    Raised when client input fails validation.

    `errors` holds a structured list (e.g. pydantic's error dicts or
    plain strings) when one is available.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.errors = errors


class UnauthorizedError(BazaarError):
    """Missing, invalid or insufficient credentials, or access to a foreign resource."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BazaarError):
    """
    Raised when a requested resource does not exist.

    The message always contains "not found" so the classifier's message rule
    and kind rule agree.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class UpstreamError(BazaarError):
    """
    Raised when a call to a payment or courier provider fails.

    status_code is the upstream HTTP status when a response was received,
    None for transport failures (connect errors, timeouts).
    payload is the decoded upstream error body, if any.
    """

    kind = ErrorKind.UPSTREAM

    def __init__(
        self,
        message: str = "Upstream provider request failed",
        status_code: Optional[int] = None,
        payload: Optional[Union[Dict[str, Any], List[Any], str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["upstream_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.payload = payload


class PersistenceError(BazaarError):
    """
    Raised when a store operation fails (not when a record is simply absent).

    code is the driver SQLSTATE when available, else SQLAlchemy's error code.
    """

    kind = ErrorKind.PERSISTENCE

    def __init__(
        self,
        message: str = "Database operation failed",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if code:
            ctx["code"] = code
        super().__init__(message=message, context=ctx)
        self.code = code


class ShortCircuit(Exception):
    """
    Answer the request immediately with the given status.

    Raised by guards and gates from inside FastAPI dependencies; a dedicated
    exception handler turns it into a response without logging it as a
    failure. `body` overrides the default {success: false, message} envelope.
    """

    def __init__(
        self,
        status_code: int,
        message: str = "",
        body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.body = body if body is not None else {"success": False, "message": message}
        self.headers = headers


# ── Boundary translation ──────────────────────────────────────────────────

def upstream_error_from_httpx(exc: httpx.HTTPError) -> UpstreamError:
    """Build an UpstreamError from an httpx failure."""
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text} if response.text else None
        return UpstreamError(
            message=f"Upstream request failed with status {response.status_code}",
            status_code=response.status_code,
            payload=payload,
            context={"url": str(exc.request.url)},
        )
    return UpstreamError(message=f"Upstream request failed: {exc}")


def persistence_error_from_sqlalchemy(exc: SQLAlchemyError) -> PersistenceError:
    """Build a PersistenceError from a SQLAlchemy failure."""
    code = None
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    code = code or exc.code
    return PersistenceError(message=str(exc.__class__.__name__), code=code)


def from_exception(exc: BaseException) -> BazaarError:
    """
    Map any exception onto the closed set of variants.

    Application errors pass through; httpx and SQLAlchemy errors are
    translated by type; everything else becomes UNCLASSIFIED.
    """
    if isinstance(exc, BazaarError):
        return exc
    if isinstance(exc, httpx.HTTPError):
        return upstream_error_from_httpx(exc)
    if isinstance(exc, SQLAlchemyError):
        return persistence_error_from_sqlalchemy(exc)
    return BazaarError(message=str(exc) or exc.__class__.__name__)
