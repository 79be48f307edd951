"""Domain error taxonomy for the product service.

Every error carries the HTTP status the API layer answers with, so the
transport mapping lives next to the error rather than in each router.
"""


class ProductServiceError(Exception):
    """Base class for errors returned to callers unmodified."""

    status_code: int = 500
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(ProductServiceError):
    status_code = 401
    default_message = "unauthorized"


class ProductNotFoundError(ProductServiceError):
    status_code = 404
    default_message = "product not found"


class ProductAlreadyDeletedError(ProductServiceError):
    status_code = 412
    default_message = "product already deleted"


class ThumbnailNotFoundError(ProductServiceError):
    status_code = 404
    default_message = "thumbnail not found"


class ThumbnailTypeNotAllowedError(ProductServiceError):
    status_code = 412
    default_message = "thumbnail object type not allowed"


class ThumbnailNotPublicError(ProductServiceError):
    status_code = 412
    default_message = "thumbnail object is not public"


class StoreError(ProductServiceError):
    """Transient failure of the relational store, cache or search projection."""

    default_message = "store failure"


class TaskDecodeError(ProductServiceError):
    """A queued task payload could not be decoded; retrying cannot help."""

    default_message = "task payload could not be decoded"
