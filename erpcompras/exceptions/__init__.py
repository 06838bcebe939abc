"""Custom exceptions for the purchasing API."""


class ErpError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['message'] = self.message
        rv['error'] = type(self).__name__
        return rv


class ValidationError(ErpError):
    """Malformed or out-of-range input."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(ErpError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, 404, payload)


class InvalidTransitionError(ErpError):
    """Raised when an order status change is not allowed."""
    def __init__(self, current_status, requested_status=None, message=None):
        self.current_status = current_status
        self.requested_status = requested_status
        if message is None:
            message = (
                f'La orden está en estado "{current_status}" y no admite cambios de estado'
            )
        payload = {'current_status': current_status}
        if requested_status is not None:
            payload['requested_status'] = requested_status
        super().__init__(message, 400, payload)


class ConflictError(ErpError):
    """Uniqueness or referential conflict."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class StoreError(ErpError):
    """Persistence failure. transient marks connectivity errors worth retrying."""
    def __init__(self, message="Error de base de datos", transient=False, payload=None):
        super().__init__(message, 500, payload)
        self.transient = transient
