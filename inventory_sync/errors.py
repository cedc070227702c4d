"""Error kinds raised by the stock and query services.

Each carries the HTTP status the API layer answers with, so routes never
translate exceptions by hand.
"""


class InventoryError(Exception):
    status_code = 500
    default_message = "Inventory operation failed"

    def __init__(self, message: str | None = None, errors=None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(InventoryError):
    status_code = 422
    default_message = "Validation failed"


class NotFoundError(InventoryError):
    status_code = 404
    default_message = "Product not found"


class ConflictError(InventoryError):
    status_code = 409
    default_message = "Product reference already exists"


class MutationFailedError(InventoryError):
    """A stock mutation was rolled back. The original exception is ``__cause__``."""

    status_code = 500
    default_message = "Failed to update stock"

    @property
    def cause_message(self) -> str:
        return str(self.__cause__) if self.__cause__ is not None else ""


class BulkValidationError(InventoryError):
    status_code = 422
    default_message = "Bulk stock update failed"

    def __init__(self, errors: list[str], message: str | None = None):
        super().__init__(message, errors=list(errors))
