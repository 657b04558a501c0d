"""
Exceptions raised by the gateway resolver and port drivers.

None of these are retried by the gateway layer; callers (views, tasks)
decide how to render or recover from them.
"""

from typing import Any, Dict, Optional

from django.utils.translation import gettext_lazy as _


class GatewayException(Exception):
    """
    Base exception for payment gateway errors.

    Carries a machine-readable error code and, when available, the raw
    gateway response for debugging.
    """
    default_message = _("Payment gateway error")
    default_code = 'gateway_error'

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None,
                 gateway_response: Optional[Dict[str, Any]] = None):
        self.message = str(message if message is not None else self.default_message)
        self.error_code = error_code if error_code is not None else self.default_code
        self.gateway_response = gateway_response
        super().__init__(self.message)


class PortNotFoundError(GatewayException):
    """The requested port is not one of the supported gateways."""
    default_message = _("Port not found")
    default_code = 'port_not_found'


class InvalidRequestError(GatewayException):
    """The callback request does not identify a transaction."""
    default_message = _("Invalid callback request")
    default_code = 'invalid_request'


class TransactionNotFoundError(GatewayException):
    default_message = _("Transaction not found")
    default_code = 'transaction_not_found'


class RetryError(GatewayException):
    """A callback was received for a transaction that is already settled."""
    default_message = _("Transaction has already been processed")
    default_code = 'retry'

    def __init__(self, message=None, error_code=None, gateway_response=None, transaction=None):
        super().__init__(message, error_code, gateway_response)
        self.transaction = transaction


class CardValidationNotSupportedError(GatewayException):
    default_message = _("Card number validation is not supported by this port")
    default_code = 'card_validation_not_supported'


class GatewayConnectionError(GatewayException):
    """The gateway could not be reached or returned an unreadable response."""
    default_message = _("Could not connect to the payment gateway")
    default_code = 'connection_error'


class VendorError(GatewayException):
    """
    A gateway reported a failure.

    Subclasses provide an ``errors`` table mapping the vendor's result codes
    to human-readable messages.
    """
    errors: Dict[Any, str] = {}
    default_message = _("Transaction failed")
    default_code = 'vendor_error'

    def __init__(self, error_code=None, message: Optional[str] = None, transaction=None,
                 gateway_response: Optional[Dict[str, Any]] = None):
        if error_code is None:
            error_code = self.default_code
        if message is None:
            message = self.get_message(error_code)
        super().__init__(message, error_code, gateway_response)
        self.transaction = transaction

    @classmethod
    def get_message(cls, error_code) -> str:
        message = cls.errors.get(error_code)
        if message is None and error_code is not None:
            message = cls.errors.get(str(error_code))
        return str(message if message is not None else cls.default_message)
