# core/exceptions.py
"""
Exception types raised by the item store, service and request layers
"""


class ItemServiceError(Exception):
    """Base exception for item operations"""
    pass


class DuplicateItemError(ItemServiceError):
    """A write was rejected by a store integrity constraint (e.g. unique email)"""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class TypeMismatchError(ItemServiceError):
    """A request parameter could not be converted to the expected type"""

    def __init__(self, name: str, expected: str = 'unknown'):
        super().__init__(f"{name}: expected {expected}")
        self.name = name
        self.expected = expected


class ConstraintViolationError(ItemServiceError):
    """A request parameter was well-typed but out of range"""

    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message
