"""
Base classes for payment ports.

Every gateway driver ("port") implements the same four-stage protocol:

    set_amount() -> ready() -> redirect() -> verify(transaction)

Only endpoint URLs, field names and result codes differ between vendors.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from payments.models import Transaction, TransactionStatus
from .config import GatewayConfig
from .exceptions import (
    CardValidationNotSupportedError,
    GatewayConnectionError,
    GatewayException,
    RetryError,
    VendorError,
)
from .utils import add_query_params, get_client_ip, get_request_param, mask_card_number

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    """
    Outcome of verifying a payment.

    Attributes:
        success: Whether the gateway confirmed the payment
        transaction: The transaction in its final state
        tracking_code: Receipt identifier issued by the gateway
        card_number: Masked card number of the payer
        error_code: Vendor result code when the payment failed
        error_message: Human-readable failure reason
    """
    success: bool
    transaction: Optional[Transaction] = None
    tracking_code: Optional[str] = None
    card_number: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def status(self) -> Optional[str]:
        return self.transaction.status if self.transaction is not None else None


class BasePort(ABC):
    """
    Abstract base class for payment port drivers.

    Drivers are created by the gateway resolver, which injects the shared
    configuration, the port name and the inbound request, then calls boot().
    """

    # Methods the resolver may forward to the selected port
    DRIVER_METHODS = frozenset({
        'set_amount',
        'ready',
        'initiate',
        'redirect',
        'verify',
        'set_callback',
        'get_callback',
        'set_description',
        'set_valid_card_number',
        'set_valid_card_numbers',
        'get_valid_card_numbers',
    })

    # Factor converting the caller's amount into the vendor's unit
    amount_multiplier = 1

    # How many allow-listed card numbers the vendor accepts
    max_valid_card_numbers = 1

    exception_class = VendorError

    def __init__(self, config: Optional[GatewayConfig] = None, request=None):
        self.config = config or GatewayConfig()
        self.request = request
        self._port_name: Optional[str] = None
        self._amount: Optional[int] = None
        self._callback_url: Optional[str] = None
        self._description = ''
        self._valid_card_numbers: List[str] = []
        self._ref_id: Optional[str] = None
        self._tracking_code: Optional[str] = None
        self._card_number: Optional[str] = None
        self.transaction: Optional[Transaction] = None

    # Wiring done by the resolver

    def set_config(self, config: GatewayConfig):
        self.config = config
        return self

    def set_port_name(self, name: str):
        self._port_name = name
        return self

    def set_request(self, request):
        self.request = request
        return self

    def boot(self):
        """Hook called once the port has its config, name and request."""
        pass

    # Accessors

    @property
    def port_name(self) -> Optional[str]:
        return self._port_name

    @property
    def options(self) -> Dict[str, Any]:
        """Configuration for this port"""
        if not self._port_name:
            return {}
        return self.config.for_port(self._port_name)

    @property
    def amount(self) -> Optional[int]:
        return self._amount

    @property
    def transaction_id(self) -> Optional[int]:
        return self.transaction.pk if self.transaction is not None else None

    @property
    def ref_id(self) -> Optional[str]:
        return self._ref_id

    @property
    def tracking_code(self) -> Optional[str]:
        return self._tracking_code

    @property
    def card_number(self) -> Optional[str]:
        return self._card_number

    # Payment protocol

    def set_amount(self, amount):
        """
        Set the payment amount.

        Args:
            amount: Amount in the caller's unit; converted with amount_multiplier

        Returns:
            The port, for chaining
        """
        self._amount = int(Decimal(str(amount)) * self.amount_multiplier)
        return self

    def ready(self):
        """
        Create a pending transaction and request a payment from the gateway.

        Raises:
            VendorError: If the gateway rejects the request
            GatewayConnectionError: If the gateway cannot be reached
        """
        if self._amount is None:
            raise GatewayException(_("You have to set an amount first."), error_code='amount_missing')

        self.send_pay_request()
        return self

    initiate = ready

    @abstractmethod
    def send_pay_request(self):
        """Create the transaction and issue the vendor's payment request"""
        pass

    @abstractmethod
    def get_gateway_url(self) -> str:
        """URL of the vendor payment page for the current reference token"""
        pass

    def redirect(self) -> str:
        """
        Return the URL the payer should be redirected to.

        No network call is made; ready() must have succeeded first.
        """
        if not self._ref_id:
            raise GatewayException(
                _("Payment has not been initiated; call ready() first."),
                error_code='not_initiated'
            )
        return self.get_gateway_url()

    @abstractmethod
    def verify(self, transaction: Transaction) -> PaymentResult:
        """
        Verify the gateway callback for a pending transaction.

        Returns:
            PaymentResult for a confirmed payment

        Raises:
            VendorError: If the payer cancelled or the gateway rejects the payment
        """
        pass

    def load_transaction(self, transaction: Transaction):
        """Restore port state from a stored transaction before verifying it"""
        self.transaction = transaction
        self._ref_id = transaction.ref_id
        self._amount = transaction.price
        return self

    # Callback URL

    def set_callback(self, url: str):
        self._callback_url = url
        return self

    def get_callback(self) -> str:
        """
        Callback URL with the transaction id appended.

        Raises:
            GatewayException: If no callback URL is configured
        """
        url = self._callback_url or self.options.get('callback_url') or self.config.callback_url
        if not url:
            raise GatewayException(_("You have to set callback url first."), error_code='callback_missing')

        return add_query_params(url, transaction_id=self.transaction_id)

    def set_description(self, description: str):
        self._description = description or ''
        return self

    # Card allow-list

    def set_valid_card_numbers(self, card_numbers):
        """
        Restrict the payment to the given card numbers.

        Raises:
            CardValidationNotSupportedError: If the vendor accepts fewer cards
        """
        card_numbers = [str(number) for number in card_numbers if number]
        if len(card_numbers) > self.max_valid_card_numbers:
            raise CardValidationNotSupportedError(
                f"{self.__class__.__name__} supports at most "
                f"{self.max_valid_card_numbers} verified card number(s)"
            )
        self._valid_card_numbers = card_numbers
        return self

    def set_valid_card_number(self, card_number):
        return self.set_valid_card_numbers([card_number])

    def get_valid_card_numbers(self) -> List[str]:
        return list(self._valid_card_numbers)

    # Transaction bookkeeping

    def get_param(self, name: str, default=None):
        return get_request_param(self.request, name, default)

    def new_transaction(self) -> Transaction:
        self.transaction = Transaction.objects.create_pending(
            port=self._port_name,
            price=self._amount,
            ip=get_client_ip(self.request),
            description=self._description,
        )
        logger.info(
            f"Created transaction {self.transaction.pk}",
            extra={'port': self._port_name, 'transaction_id': self.transaction.pk}
        )
        return self.transaction

    def transaction_set_ref_id(self):
        Transaction.objects.set_ref_id(self.transaction_id, self._ref_id)
        self.transaction.ref_id = self._ref_id

    def transaction_succeed(self):
        """
        Mark the transaction as succeeded.

        Raises:
            RetryError: If another callback settled the transaction first
        """
        updated = Transaction.objects.transition(
            self.transaction_id,
            TransactionStatus.SUCCEEDED,
            tracking_code=self._tracking_code,
            card_number=self._card_number,
            payment_date=timezone.now(),
        )
        self.transaction.refresh_from_db()
        if not updated:
            raise RetryError(transaction=self.transaction)

    def transaction_failed(self) -> bool:
        updated = Transaction.objects.transition(self.transaction_id, TransactionStatus.FAILED)
        if self.transaction is not None:
            self.transaction.refresh_from_db()
        return updated

    def new_log(self, code, message):
        return self.transaction.append_log(code, message)

    def succeeded(self) -> PaymentResult:
        """Finalize a confirmed payment and build its result"""
        self.transaction_succeed()
        self.new_log(TransactionStatus.SUCCEEDED, _("Transaction completed successfully"))
        logger.info(
            f"Transaction {self.transaction_id} verified",
            extra={'port': self._port_name, 'transaction_id': self.transaction_id}
        )
        return PaymentResult(
            success=True,
            transaction=self.transaction,
            tracking_code=self._tracking_code,
            card_number=self._card_number,
        )

    def failed(self, error_code=None, message: Optional[str] = None,
               gateway_response: Optional[Dict[str, Any]] = None):
        """
        Mark the transaction as failed, log the vendor code and raise.

        Raises:
            VendorError: Using the port's exception_class
            RetryError: If another callback settled the transaction first
        """
        exc = self.exception_class(
            error_code,
            message=message,
            gateway_response=gateway_response,
        )
        if self.transaction is not None:
            if not self.transaction_failed():
                raise RetryError(transaction=self.transaction)
            self.new_log(exc.error_code, exc.message)
            exc.transaction = self.transaction

        logger.warning(
            f"{self._port_name} payment failed: {exc.message}",
            extra={
                'port': self._port_name,
                'transaction_id': self.transaction_id,
                'error_code': exc.error_code,
            }
        )
        raise exc

    def set_card_number(self, card_number):
        self._card_number = mask_card_number(card_number)

    # HTTP

    def json_request(self, url: str, data: Dict[str, Any],
                     headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        POST JSON to a gateway endpoint and decode the JSON reply.

        Vendor-level errors are reported in the body, so the HTTP status is
        only checked when the body cannot be decoded.

        Raises:
            GatewayConnectionError: If the request fails or the reply is not JSON
        """
        request_headers = {
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }
        request_headers.update(headers or {})

        try:
            response = requests.post(
                url,
                json=data,
                headers=request_headers,
                timeout=self.config.request_timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                f"{self._port_name} request failed: {str(e)}",
                extra={'port': self._port_name, 'url': url},
                exc_info=True
            )
            raise GatewayConnectionError(
                f"Payment gateway request failed: {str(e)}",
                gateway_response={'error': str(e)}
            )

        try:
            return response.json()
        except ValueError:
            raise GatewayConnectionError(
                f"Invalid response from payment gateway (HTTP {response.status_code})",
                gateway_response={'status_code': response.status_code}
            )
