"""
Payment gateway resolver.

Picks a port driver by name (or validates an existing driver instance),
wires it with the shared configuration and the inbound request, and runs
the callback verification flow for transactions coming back from a gateway.
"""

import logging
from typing import Dict, List, Optional, Type

from payments.models import PortName, Transaction
from .base import BasePort, PaymentResult
from .config import GatewayConfig
from .exceptions import (
    InvalidRequestError,
    PortNotFoundError,
    RetryError,
    TransactionNotFoundError,
    VendorError,
)
from .novinpal import NovinpalPort
from .razorpay_gateway import RazorpayPort
from .zarinpal import ZarinpalPort
from .utils import get_request_param

logger = logging.getLogger(__name__)


# Port registry - maps each supported gateway to its driver class
PORT_REGISTRY: Dict[str, Type[BasePort]] = {
    PortName.NOVINPAL: NovinpalPort,
    PortName.ZARINPAL: ZarinpalPort,
    PortName.RAZORPAY: RazorpayPort,
}

# Callback fields that may carry the transaction id, in order of preference
TRANSACTION_ID_FIELDS = ('transaction_id', 'iN')


class Gateway:
    """
    Resolves port drivers and verifies gateway callbacks.

    Example:
        >>> port = Gateway(request=request).make('novinpal')
        >>> port.set_amount(1000).set_callback(url).ready()
        >>> return redirect(port.redirect())

        # in the callback view
        >>> result = Gateway(request=request).verify()
    """

    def __init__(self, config: Optional[GatewayConfig] = None, request=None, port=None):
        self.config = config or GatewayConfig.from_settings()
        self.request = request
        self.port: Optional[BasePort] = None

        if port is not None:
            self.make(port)

    @staticmethod
    def get_supported_ports() -> List[str]:
        return [str(name) for name in PORT_REGISTRY]

    def make(self, port) -> BasePort:
        """
        Select a port driver.

        Args:
            port: Port name (case-insensitive) or an existing driver instance

        Returns:
            The driver, with config, port name and request injected

        Raises:
            PortNotFoundError: If the port is not a registered gateway
        """
        if isinstance(port, BasePort):
            name = self._name_for_instance(port)
        else:
            name = str(port or '').strip().upper()
            if name not in PORT_REGISTRY:
                supported = ', '.join(self.get_supported_ports())
                raise PortNotFoundError(
                    f"Unsupported payment port: {port}. Supported ports: {supported}"
                )
            port = PORT_REGISTRY[name]()

        port.set_config(self.config)
        port.set_port_name(name)
        port.set_request(self.request)
        port.boot()

        self.port = port
        return port

    def dispatch(self, name: str, *args, **kwargs):
        """
        Forward a call by name.

        A gateway name selects that port; any other name must be one of the
        driver methods and is called on the currently selected port.
        """
        if name.upper() in PORT_REGISTRY:
            return self.make(name)

        if name not in BasePort.DRIVER_METHODS:
            raise AttributeError(f"'{name}' is neither a port nor a port method")

        if self.port is None:
            raise PortNotFoundError("No port selected; call make() first")

        return getattr(self.port, name)(*args, **kwargs)

    def verify(self) -> PaymentResult:
        """
        Verify the callback in the current request.

        Raises:
            InvalidRequestError: If the request carries no transaction id
            TransactionNotFoundError: If the transaction does not exist
            RetryError: If the transaction is already settled
            PortNotFoundError: If the transaction's port is not registered
            VendorError: If the gateway reports the payment as failed
        """
        transaction_id = self.get_transaction_id()

        transaction = Transaction.objects.find(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        if transaction.is_terminal:
            logger.warning(
                f"Callback replayed for settled transaction {transaction.pk}",
                extra={'transaction_id': transaction.pk, 'status': transaction.status}
            )
            raise RetryError(transaction=transaction)

        port = self.make(transaction.port)
        return port.verify(transaction)

    def settle(self) -> PaymentResult:
        """
        Verify the callback, reporting vendor failures as a result.

        Unlike verify(), a payment the gateway rejects produces a
        PaymentResult with success=False and the failed transaction.
        Request-level errors still raise.
        """
        try:
            return self.verify()
        except VendorError as e:
            return PaymentResult(
                success=False,
                transaction=e.transaction,
                error_code=str(e.error_code),
                error_message=e.message,
            )

    def get_transaction_id(self):
        for field in TRANSACTION_ID_FIELDS:
            value = get_request_param(self.request, field)
            if value not in (None, ''):
                return value

        raise InvalidRequestError(
            f"Callback request must include one of: {', '.join(TRANSACTION_ID_FIELDS)}"
        )

    def _name_for_instance(self, port: BasePort) -> str:
        for name, port_class in PORT_REGISTRY.items():
            if type(port) is port_class:
                return str(name)

        raise PortNotFoundError(f"Unsupported payment port: {port.__class__.__name__}")


def get_gateway(port_name: Optional[str] = None, request=None,
                config: Optional[GatewayConfig] = None) -> BasePort:
    """
    Get a ready-to-use port driver.

    Args:
        port_name: Port name ('novinpal', 'zarinpal', ...)
                   If None, uses PAYMENT_GATEWAYS['DEFAULT_PORT']
        request: Inbound request (payer IP, callback parameters)
        config: Gateway configuration, defaults to the Django settings

    Raises:
        PortNotFoundError: If the port is not supported
    """
    gateway = Gateway(config=config, request=request)
    return gateway.make(port_name or gateway.config.default_port)


def list_available_ports() -> List[str]:
    return Gateway.get_supported_ports()
