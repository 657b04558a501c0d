"""
Novinpal payment port.

Amounts are given in toman and sent to Novinpal in rials.
"""

from django.utils.translation import gettext_lazy as _

from payments.models import Transaction
from .base import BasePort, PaymentResult
from .exceptions import VendorError


class NovinpalException(VendorError):
    errors = {
        'cancelled': _("Payment was cancelled by the payer"),
        'missing_ref_id': _("Gateway did not return a reference id"),
    }


class NovinpalPort(BasePort):
    """
    Novinpal invoice API.

    Options (PAYMENT_GATEWAYS['PORTS']['NOVINPAL']):
        api_key: Merchant API key
        callback_url: Optional per-port callback URL
    """
    base_url = 'https://api.novinpal.ir/invoice/'
    request_url = base_url + 'request'
    verify_url = base_url + 'verify'
    gate_url = base_url + 'start/'

    SUCCESS_STATUS = 1

    amount_multiplier = 10
    exception_class = NovinpalException

    def get_gateway_url(self) -> str:
        return self.gate_url + str(self._ref_id)

    def send_pay_request(self):
        self.new_transaction()

        data = {
            'api_key': self.options.get('api_key'),
            'amount': self._amount,
            'order_id': str(self.transaction_id),
            'description': self._description or f"txn #{self.transaction_id}",
            'return_url': self.get_callback(),
        }
        if self._valid_card_numbers:
            data['card_number'] = self._valid_card_numbers[0]

        response = self.json_request(self.request_url, data)

        if not self.is_successful(response):
            self.failed(
                response.get('errorCode') or response.get('message'),
                message=response.get('errorDescription'),
                gateway_response=response
            )

        if not response.get('refId'):
            self.failed('missing_ref_id', gateway_response=response)

        self._ref_id = str(response['refId'])
        self.transaction_set_ref_id()

    def verify(self, transaction: Transaction) -> PaymentResult:
        self.load_transaction(transaction)

        status = self.get_param('success')
        ref_id = self.get_param('refId')
        self.user_payment(status, ref_id)

        return self.verify_payment()

    def user_payment(self, status, ref_id):
        """Check the payer's return parameters"""
        if str(status) != str(self.SUCCESS_STATUS) or not ref_id:
            self.failed('cancelled')

    def verify_payment(self) -> PaymentResult:
        response = self.json_request(self.verify_url, {
            'api_key': self.options.get('api_key'),
            'ref_id': self._ref_id,
        })

        if not self.is_successful(response):
            self.failed(
                response.get('errorCode') or response.get('message'),
                message=response.get('errorDescription'),
                gateway_response=response
            )

        tracking_code = response.get('refId')
        self._tracking_code = str(tracking_code) if tracking_code is not None else None
        self.set_card_number(response.get('cardNumber'))
        return self.succeeded()

    def is_successful(self, response) -> bool:
        return str(response.get('status')) == str(self.SUCCESS_STATUS)
