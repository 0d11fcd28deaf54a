"""
Shared building blocks for the opensettle package.
"""

from .exceptions import (
    ConfigurationError,
    DeliveryError,
    DeliveryTimeoutError,
    InvalidArgumentError,
    MissingHeaderError,
    OperationCancelledError,
    PublishError,
    TopicProvisioningError,
)

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "DeliveryTimeoutError",
    "InvalidArgumentError",
    "MissingHeaderError",
    "OperationCancelledError",
    "PublishError",
    "TopicProvisioningError",
]
