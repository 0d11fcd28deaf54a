"""Custom exceptions for the opensettle package."""

from typing import Optional


class PublishError(Exception):
    """Base class for every error raised by the publish pipeline."""

    pass


class ConfigurationError(PublishError):
    """Raised when delivery configuration is invalid or contradictory."""

    pass


class InvalidArgumentError(PublishError):
    """Raised when a caller passes an empty or missing required field."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Invalid or empty argument: {field}")


class MissingHeaderError(PublishError):
    """Raised when a required metadata header is absent or blank."""

    def __init__(self, header_name: str):
        self.header_name = header_name
        super().__init__(f"Missing required header: {header_name}")


class DeliveryError(PublishError):
    """
    Raised when the broker rejected, timed out or could not confirm a send.

    The broker's error classification is carried verbatim in ``code`` and
    ``reason``.
    """

    def __init__(self, code: str, reason: str, retriable: bool = False, fatal: bool = False):
        self.code = code
        self.reason = reason
        self.retriable = retriable
        self.fatal = fatal
        super().__init__(f"Delivery failed [{code}]: {reason}")


class DeliveryTimeoutError(DeliveryError):
    """Raised when a send is not acknowledged within the message timeout."""

    pass


class OperationCancelledError(PublishError):
    """Raised when the caller's cancellation signal fired before acknowledgment."""

    pass


class TopicProvisioningError(PublishError):
    """Raised when a topic cannot be inspected or created."""

    pass
