"""
Razorpay payment port.

Uses Razorpay Payment Links: ready() creates a link whose callback points
back at this app, and verify() checks the callback signature and the
captured payment.
"""

import logging

import razorpay
from django.utils.translation import gettext_lazy as _

from payments.models import Transaction
from .base import BasePort, PaymentResult
from .exceptions import GatewayConnectionError, GatewayException, VendorError

logger = logging.getLogger(__name__)


class RazorpayException(VendorError):
    errors = {
        'payment_link_creation_failed': _("Failed to create payment link"),
        'cancelled': _("Payment was cancelled by the payer"),
        'signature_mismatch': _("Callback signature verification failed"),
        'payment_not_found': _("Payment not found"),
        'amount_mismatch': _("Paid amount does not match the transaction"),
        'authorized': _("Payment has been authorized but not captured"),
        'failed': _("Payment failed"),
    }


class RazorpayPort(BasePort):
    """
    Razorpay gateway implementation.

    Options (PAYMENT_GATEWAYS['PORTS']['RAZORPAY']):
        key_id: Razorpay Key ID (starts with rzp_test_ or rzp_live_)
        key_secret: Razorpay Key Secret
        currency: ISO currency code, defaults to INR
        callback_url: Optional per-port callback URL
    """

    # Rupees to paise
    amount_multiplier = 100

    # Payment links cannot be restricted to a card
    max_valid_card_numbers = 0

    exception_class = RazorpayException

    def __init__(self, config=None, request=None):
        super().__init__(config, request)
        self._client = None
        self._short_url = None

    @property
    def client(self):
        """Razorpay client built from the port options on first use"""
        if self._client is None:
            key_id = self.options.get('key_id')
            key_secret = self.options.get('key_secret')
            if not key_id or not key_secret:
                raise GatewayException(
                    "Missing configuration for RAZORPAY: key_id and key_secret are required",
                    error_code='gateway_config_missing'
                )
            self._client = razorpay.Client(auth=(key_id, key_secret))
        return self._client

    def get_gateway_url(self) -> str:
        return self._short_url

    def send_pay_request(self):
        client = self.client
        self.new_transaction()

        link_data = {
            'amount': self._amount,
            'currency': self.options.get('currency', 'INR'),
            'reference_id': str(self.transaction_id),
            'description': self._description or f"txn #{self.transaction_id}",
            'callback_url': self.get_callback(),
            'callback_method': 'get',
        }

        try:
            link = client.payment_link.create(data=link_data)
        except razorpay.errors.BadRequestError as e:
            self.failed(
                'payment_link_creation_failed',
                message=f"Failed to create payment link: {str(e)}",
                gateway_response=e.args[0] if e.args else None
            )
        except (razorpay.errors.ServerError, razorpay.errors.GatewayError) as e:
            logger.error(
                "Unexpected error creating Razorpay payment link",
                extra={'transaction_id': self.transaction_id, 'error': str(e)},
                exc_info=True
            )
            raise GatewayConnectionError(f"Payment gateway request failed: {str(e)}")

        self._ref_id = link['id']
        self._short_url = link.get('short_url')
        self.transaction_set_ref_id()

    def verify(self, transaction: Transaction) -> PaymentResult:
        self.load_transaction(transaction)

        status = self.get_param('razorpay_payment_link_status')
        link_id = self.get_param('razorpay_payment_link_id')
        payment_id = self.get_param('razorpay_payment_id')

        if status != 'paid' or not payment_id or link_id != self._ref_id:
            self.failed('cancelled')

        self.verify_signature(link_id, status, payment_id)
        return self.verify_payment(payment_id)

    def verify_signature(self, link_id, status, payment_id):
        parameters = {
            'payment_link_id': link_id,
            'payment_link_reference_id': self.get_param('razorpay_payment_link_reference_id', ''),
            'payment_link_status': status,
            'razorpay_payment_id': payment_id,
            'razorpay_signature': self.get_param('razorpay_signature', ''),
        }
        try:
            verified = self.client.utility.verify_payment_link_signature(parameters)
        except razorpay.errors.SignatureVerificationError:
            verified = False

        if not verified:
            self.failed('signature_mismatch')

    def verify_payment(self, payment_id) -> PaymentResult:
        try:
            payment = self.client.payment.fetch(payment_id, data={'expand[]': 'card'})
        except razorpay.errors.BadRequestError as e:
            self.failed(
                'payment_not_found',
                gateway_response=e.args[0] if e.args else None
            )
        except (razorpay.errors.ServerError, razorpay.errors.GatewayError) as e:
            logger.error(
                "Unexpected error fetching Razorpay payment",
                extra={'transaction_id': self.transaction_id, 'payment_id': payment_id, 'error': str(e)},
                exc_info=True
            )
            raise GatewayConnectionError(f"Payment gateway request failed: {str(e)}")

        if payment.get('status') != 'captured':
            self.failed(payment.get('status') or 'failed', gateway_response=payment)

        if payment.get('amount') != self._amount:
            self.failed('amount_mismatch', gateway_response=payment)

        self._tracking_code = payment['id']
        last4 = (payment.get('card') or {}).get('last4')
        if last4:
            self.set_card_number(f"************{last4}")
        return self.succeeded()
