"""
PolyTrans Exceptions

Error taxonomy shared by providers, the receiving pipeline and the
dispatcher. Result objects (TranslationResult, ProcessResult,
DeliveryOutcome) carry the same ErrorKind values as their discriminant.
"""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    PROVIDER = "provider"
    CREATION = "creation"
    DELIVERY = "delivery"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class PolyTransError(Exception):
    """Base error with optional code and details."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind.value}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(PolyTransError):
    """Malformed or missing job fields."""

    kind = ErrorKind.VALIDATION


class ProviderError(PolyTransError):
    """Backend translation failure (credentials, rate limit, network)."""

    kind = ErrorKind.PROVIDER


class CreationError(PolyTransError):
    """The translated content record could not be built."""

    kind = ErrorKind.CREATION


class DeliveryError(PolyTransError):
    """Callback delivery to the target endpoint failed."""

    kind = ErrorKind.DELIVERY


class AuthenticationError(PolyTransError):
    """Inbound shared secret missing or mismatched."""

    kind = ErrorKind.AUTHENTICATION


class ConfigError(PolyTransError):
    """Settings failed validation at load time."""

    kind = ErrorKind.CONFIGURATION
