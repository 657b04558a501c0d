"""
Zarinpal payment port (REST API v4).
"""

from django.utils.translation import gettext_lazy as _

from payments.models import Transaction
from .base import BasePort, PaymentResult
from .exceptions import VendorError


class ZarinpalException(VendorError):
    errors = {
        -9: _("Validation error"),
        -10: _("Terminal is not valid, check merchant id or IP address"),
        -11: _("Terminal is not active"),
        -12: _("Too many attempts, please try again later"),
        -15: _("Terminal has been suspended"),
        -16: _("Terminal access level is not valid"),
        -30: _("Terminal does not allow floating wages"),
        -50: _("Session is not valid, amounts do not match"),
        -51: _("Session is not valid, session is not an active paid try"),
        -52: _("Unexpected error, contact Zarinpal support"),
        -53: _("Session does not belong to this merchant"),
        -54: _("Invalid authority"),
        'cancelled': _("Payment was cancelled by the payer"),
        'missing_authority': _("Gateway did not return an authority"),
    }


class ZarinpalPort(BasePort):
    """
    Zarinpal payment gateway.

    Options (PAYMENT_GATEWAYS['PORTS']['ZARINPAL']):
        merchant_id: 36 character merchant id
        sandbox: Use the sandbox hosts
        callback_url: Optional per-port callback URL
        mobile, email: Optional payer details sent as metadata
    """
    live_host = 'https://payment.zarinpal.com'
    sandbox_host = 'https://sandbox.zarinpal.com'

    request_path = '/pg/v4/payment/request.json'
    verify_path = '/pg/v4/payment/verify.json'
    gate_path = '/pg/StartPay/'

    SUCCESS_CODES = (100,)
    VERIFIED_CODES = (100, 101)

    amount_multiplier = 10
    exception_class = ZarinpalException

    @property
    def host(self) -> str:
        return self.sandbox_host if self.options.get('sandbox') else self.live_host

    def get_gateway_url(self) -> str:
        return self.host + self.gate_path + str(self._ref_id)

    def send_pay_request(self):
        self.new_transaction()

        metadata = {
            key: self.options[key]
            for key in ('mobile', 'email')
            if self.options.get(key)
        }
        metadata['order_id'] = str(self.transaction_id)
        if self._valid_card_numbers:
            metadata['card_pan'] = self._valid_card_numbers[0]

        response = self.json_request(self.host + self.request_path, {
            'merchant_id': self.options.get('merchant_id'),
            'amount': self._amount,
            'currency': 'IRR',
            'callback_url': self.get_callback(),
            'description': self._description or f"txn #{self.transaction_id}",
            'metadata': metadata,
        })

        code, data = self.parse_response(response)
        if code not in self.SUCCESS_CODES:
            self.failed(code, gateway_response=response)

        if not data.get('authority'):
            self.failed('missing_authority', gateway_response=response)

        self._ref_id = data['authority']
        self.transaction_set_ref_id()

    def verify(self, transaction: Transaction) -> PaymentResult:
        self.load_transaction(transaction)

        status = self.get_param('Status')
        authority = self.get_param('Authority')
        if status != 'OK' or not authority or authority != self._ref_id:
            self.failed('cancelled')

        response = self.json_request(self.host + self.verify_path, {
            'merchant_id': self.options.get('merchant_id'),
            'amount': self._amount,
            'authority': self._ref_id,
        })

        code, data = self.parse_response(response)
        if code not in self.VERIFIED_CODES:
            self.failed(code, gateway_response=response)

        tracking_code = data.get('ref_id')
        self._tracking_code = str(tracking_code) if tracking_code is not None else None
        self.set_card_number(data.get('card_pan'))
        return self.succeeded()

    @staticmethod
    def parse_response(response):
        """
        Extract the result code and data block from a v4 response.

        Successful replies carry ``data.code``; failures carry an empty
        ``data`` list and ``errors.code``.
        """
        data = response.get('data')
        if isinstance(data, dict) and 'code' in data:
            return data['code'], data

        errors = response.get('errors')
        if isinstance(errors, dict):
            return errors.get('code'), {}
        return None, {}
