"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is malformed or violates a precondition; nothing was stored"""

    pass


class RecordNotFoundError(DomainException):
    """Referenced record does not exist in the projection"""

    pass


class StorageError(DomainException):
    """Storage collaborator rejected an insert, update or delete"""

    def __init__(self, message: str, reason: Exception | None = None):
        super().__init__(message)
        self.reason = reason
