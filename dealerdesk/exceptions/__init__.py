"""Custom exceptions for the DealerDesk application."""


class DealerDeskError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(DealerDeskError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(DealerDeskError):
    """Raised for malformed input (import rows, product forms, quantities)."""
    def __init__(self, errors, status_code=422):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__('; '.join(self.errors), status_code, {'errors': self.errors})


class InvalidQuantity(ValidationError):
    """Raised when a line item quantity is negative."""
    def __init__(self, product_id, quantity):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(f'Quantity for product {product_id} cannot be negative (got {quantity})')


class EmptyOrder(BusinessLogicError):
    """Raised when a commit would leave an order without positive-quantity lines."""
    def __init__(self, message='Order must have at least one item with quantity greater than 0'):
        super().__init__(message, status_code=409)


class StorageFailure(DealerDeskError):
    """An order write step failed after validation passed; nothing was saved."""
    def __init__(self, step, cause=None):
        self.step = step
        self.cause = cause
        message = f'Failed to save order during {step} step'
        if cause is not None:
            message = f'{message}: {cause}'
        super().__init__(message, 500, {'step': step})


class NotFoundError(DealerDeskError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class UnauthorizedError(DealerDeskError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access", status_code=403):
        super().__init__(message, status_code)


class RowFailure:
    """Failed import row. Returned as a value, never raised."""

    __slots__ = ('code', 'error')

    def __init__(self, code, error):
        self.code = code
        self.error = error

    @property
    def ok(self):
        return False

    def __repr__(self):
        return f"<RowFailure(code='{self.code}', error={self.error!r})>"
