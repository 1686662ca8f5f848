"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ConfigLoadError(DomainException):
    """Rule catalog source is missing, unreadable or fails validation"""

    def __init__(self, reason: str, source: str | None = None):
        self.reason = reason
        self.source = source
        message = f"{reason} (source: {source})" if source else reason
        super().__init__(message)


class UnknownMetricKeyError(ConfigLoadError):
    """Catalog references a metric key the engine cannot resolve (strict mode only)"""

    pass


class InvalidTransactionDataError(DomainException):
    """Transaction data is malformed or invalid"""

    pass
