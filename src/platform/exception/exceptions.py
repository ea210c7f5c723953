class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ValidationError(DomainError):
    """Input or business-rule violation (bad quantity, bad phone, refund over amount...)"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class InvalidTransitionError(CustomBaseError):
    """Requested order status change is not in the transition table"""

    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        self.current = current
        self.requested = requested
        super().__init__(message or f'Cannot transition order from {current} to {requested}', 409)


class OrderExpiredError(DomainError):
    def __init__(self, message: str = 'Order payment window has expired') -> None:
        super().__init__(message, 400)


class ConnectionLimitError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 429)


class OrderVersionConflictError(ConflictError):
    """Optimistic write lost against a concurrent writer; retried by the state machine"""

    def __init__(self, message: str = 'Order was modified concurrently') -> None:
        super().__init__(message)
