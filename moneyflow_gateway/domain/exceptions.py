"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is invalid; no money has been touched"""

    pass


class InsufficientFundsError(DomainException):
    """Sender balance does not cover amount plus fee"""

    pass


class PlatformError(DomainException):
    """Hosted data platform returned an error"""

    pass


class RecipientNotFoundError(PlatformError):
    """Recipient identifier does not resolve to an account"""

    pass


class PlatformUnavailableError(PlatformError):
    """Platform timed out or could not be reached"""

    pass


class PartialSettlementInconsistency(DomainException):
    """Sender was debited but the transfer could not be recorded"""

    pass


class SideEffectFailure(DomainException):
    """Post-commit bookkeeping or notification failed"""

    def __init__(self, hook: str, cause: Exception):
        super().__init__(f"{hook} failed: {cause}")
        self.hook = hook
        self.cause = cause
