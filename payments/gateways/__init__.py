"""
Payment gateway layer.

Provides a unified interface over the supported payment gateways (ports):
resolve a port by name, start a payment, redirect the payer, and verify
the callback.
"""

from .base import BasePort, PaymentResult
from .config import GatewayConfig
from .exceptions import (
    CardValidationNotSupportedError,
    GatewayConnectionError,
    GatewayException,
    InvalidRequestError,
    PortNotFoundError,
    RetryError,
    TransactionNotFoundError,
    VendorError,
)
from .resolver import PORT_REGISTRY, Gateway, get_gateway, list_available_ports

__all__ = [
    'BasePort',
    'PaymentResult',
    'GatewayConfig',
    'GatewayException',
    'PortNotFoundError',
    'InvalidRequestError',
    'TransactionNotFoundError',
    'RetryError',
    'CardValidationNotSupportedError',
    'GatewayConnectionError',
    'VendorError',
    'PORT_REGISTRY',
    'Gateway',
    'get_gateway',
    'list_available_ports',
]
