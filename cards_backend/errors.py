"""
Error taxonomy shared by the services.

Services raise these; the API turns every ``CardPlatformError`` into a JSON
``{"detail": ...}`` response carrying ``status_code``.
"""


class CardPlatformError(Exception):
    status_code = 500
    default_detail = "Internal error."

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(CardPlatformError):
    """Missing required field or value out of bounds."""
    status_code = 422
    default_detail = "Invalid input."


class NotFoundOrForbidden(CardPlatformError):
    """
    Raised both for missing cards and for cards the caller may not touch,
    so responses never reveal whether a card exists.
    """
    status_code = 404
    default_detail = "Card not found or access denied."


class ConflictError(CardPlatformError):
    status_code = 409
    default_detail = "Conflict."


class ShortCodeExhaustedError(ConflictError):
    """Every short-code candidate collided with an existing one."""
    default_detail = "Could not allocate a unique short code, please retry."


class UpstreamStorageError(CardPlatformError):
    """Object storage failed; the mutating operation was aborted."""
    status_code = 503
    default_detail = "Image storage is unavailable, please retry."
