"""Domain exceptions and their HTTP mapping."""
from typing import Any
from fastapi import HTTPException, status
from storevisit.localization.helpers import get_translation


class StoreVisitError(Exception):
    """Base class for errors raised by the template and visit engine.

    Each error carries the HTTP status it maps to and a translation key; the
    keyword arguments fill the translated message.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_key = "errors.validation_error"

    def __init__(self, key: str | None = None, **params: Any):
        self.key = key or self.default_key
        self.params = params
        super().__init__(get_translation(self.key, "en", **params))

    def localized(self, locale: str = "en") -> str:
        return get_translation(self.key, locale, **self.params)


class NotFoundError(StoreVisitError):
    """Requested resource or matching template does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_key = "errors.resource_not_found"


class InvalidStateError(StoreVisitError):
    """Lifecycle transition attempted from a disallowed status."""

    status_code = status.HTTP_409_CONFLICT
    default_key = "errors.invalid_state"


class InvalidScopeError(StoreVisitError):
    """Malformed or empty template scope."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_key = "errors.invalid_scope"


class ImmutableError(StoreVisitError):
    """Edit attempted on a record that can no longer change."""

    status_code = status.HTTP_409_CONFLICT
    default_key = "errors.template_immutable"


class ValidationError(StoreVisitError):
    """Malformed template or answer payload."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_key = "errors.validation_error"


def to_http_exception(exc: StoreVisitError, locale: str = "en") -> HTTPException:
    """Convert a domain error into an HTTPException with a localized detail."""
    return HTTPException(status_code=exc.status_code, detail=exc.localized(locale))
