"""Domain errors and the project-wide DRF exception handler.

Every error the order core raises carries a `kind` (its taxonomy name) plus
optional context such as the order's current status, so clients can explain
why an action was rejected. The handler renders all API errors, including the
framework's own 401/403/404/400 responses, as

    {"kind": "...", "detail": "...", ...context}
"""

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import exception_handler as drf_exception_handler


class DomainError(exceptions.APIException):
    """Base class for recoverable, request-scoped domain failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "DomainError"
    default_detail = "The request could not be processed."

    def __init__(self, detail=None, **context):
        super().__init__(detail=detail, code=self.kind)
        self.context = context


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"
    default_detail = "Not found."


class PermissionDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "PermissionDenied"
    default_detail = "You do not have permission to perform this action."


class InvalidTransition(DomainError):
    kind = "InvalidTransition"
    default_detail = "Status transition is not allowed."

    def __init__(self, current_status, requested_status, detail=None):
        if detail is None:
            detail = f"Cannot transition from {current_status} to {requested_status}."
        super().__init__(
            detail,
            current_status=current_status,
            requested_status=requested_status,
        )


class TerminalState(InvalidTransition):
    """Raised for any mutation of a DELIVERED or CANCELLED order."""

    kind = "TerminalState"

    def __init__(self, current_status, requested_status=None, detail=None):
        if detail is None:
            detail = f"Order is {current_status} and can no longer be changed."
        super().__init__(current_status, requested_status, detail=detail)


class InvalidState(DomainError):
    kind = "InvalidState"
    default_detail = "Action is not possible at the current stage."


class NotAssigned(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "NotAssigned"
    default_detail = "You are not assigned to this order."


class PartnerUnavailable(DomainError):
    kind = "PartnerUnavailable"
    default_detail = "Partner is not available."


class PartnerBusy(DomainError):
    kind = "PartnerBusy"
    default_detail = "Partner already has an active delivery."


class AlreadyRated(DomainError):
    kind = "AlreadyRated"
    default_detail = "Order has already been rated."


# DRF / Django exceptions that do not carry a kind of their own.
_FRAMEWORK_KINDS = (
    (exceptions.NotAuthenticated, "NotAuthenticated"),
    (exceptions.AuthenticationFailed, "NotAuthenticated"),
    (exceptions.PermissionDenied, "PermissionDenied"),
    (exceptions.NotFound, "NotFound"),
    (exceptions.ValidationError, "ValidationError"),
    (exceptions.MethodNotAllowed, "MethodNotAllowed"),
    (exceptions.ParseError, "ValidationError"),
)


def _kind_for(exc) -> str:
    kind = getattr(exc, "kind", None)
    if kind:
        return kind
    if isinstance(exc, Http404):
        return "NotFound"
    if isinstance(exc, DjangoPermissionDenied):
        return "PermissionDenied"
    for exc_class, name in _FRAMEWORK_KINDS:
        if isinstance(exc, exc_class):
            return name
    return exc.__class__.__name__


def exception_handler(exc, context):
    """Wrap DRF's handler and attach `kind` (and domain context) to the body."""
    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, list):
        data = {"detail": data}
    elif not isinstance(data, dict):
        data = {"detail": data}
    data = dict(data)
    data["kind"] = _kind_for(exc)
    for key, value in (getattr(exc, "context", None) or {}).items():
        data.setdefault(key, value)
    response.data = data
    return response
