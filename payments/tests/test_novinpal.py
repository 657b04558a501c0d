"""
Tests for the Novinpal port.

Tests cover:
- Payment request creation and redirect URL
- Vendor rejection during request and verification
- Payer cancellation on callback
- Card allow-list and connection failures
"""

import pytest
import requests

from payments.gateways import (
    CardValidationNotSupportedError,
    GatewayConnectionError,
    GatewayException,
    RetryError,
)
from payments.gateways.novinpal import NovinpalException, NovinpalPort
from payments.models import Transaction, TransactionStatus

from .conftest import CALLBACK_URL


@pytest.mark.django_db
class TestNovinpalReady:
    """Tests for starting a Novinpal payment"""

    def test_ready_success(self, make_port, mock_post, vendor_response):
        """Test a successful request stores the reference token"""
        mock_post.return_value = vendor_response({'status': 1, 'refId': 'NP-REF-123'})

        port = make_port('novinpal').set_amount(1000).ready()

        transaction = Transaction.objects.get(pk=port.transaction_id)
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.ref_id == 'NP-REF-123'
        assert transaction.price == 10000
        assert transaction.port == 'NOVINPAL'
        assert port.redirect() == 'https://api.novinpal.ir/invoice/start/NP-REF-123'

        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs['json']
        assert url == NovinpalPort.request_url
        assert payload['api_key'] == 'novinpal_test_key'
        assert payload['amount'] == 10000
        assert payload['order_id'] == str(transaction.pk)
        assert payload['return_url'] == f"{CALLBACK_URL}?transaction_id={transaction.pk}"
        assert 'card_number' not in payload
        assert mock_post.call_args.kwargs['timeout'] == 10

    def test_initiate_is_ready(self, make_port, mock_post, vendor_response):
        mock_post.return_value = vendor_response({'status': 1, 'refId': 'NP-REF-9'})

        port = make_port('novinpal').set_amount(250).initiate()

        assert port.ref_id == 'NP-REF-9'

    def test_ready_uses_explicit_callback(self, make_port, mock_post, vendor_response):
        mock_post.return_value = vendor_response({'status': 1, 'refId': 'NP-REF-1'})

        port = (
            make_port('novinpal')
            .set_amount(1000)
            .set_callback('https://merchant.example.com/return/?order=42')
            .set_description('Order 42')
            .ready()
        )

        payload = mock_post.call_args.kwargs['json']
        assert payload['return_url'] == (
            f"https://merchant.example.com/return/?order=42&transaction_id={port.transaction_id}"
        )
        assert payload['description'] == 'Order 42'
        assert Transaction.objects.get(pk=port.transaction_id).description == 'Order 42'

    def test_ready_with_valid_card(self, make_port, mock_post, vendor_response):
        mock_post.return_value = vendor_response({'status': 1, 'refId': 'NP-REF-2'})

        make_port('novinpal').set_amount(1000).set_valid_card_number('6037991234561234').ready()

        assert mock_post.call_args.kwargs['json']['card_number'] == '6037991234561234'

    def test_ready_without_amount(self, make_port, mock_post):
        with pytest.raises(GatewayException) as exc_info:
            make_port('novinpal').ready()

        assert exc_info.value.error_code == 'amount_missing'
        mock_post.assert_not_called()
        assert Transaction.objects.count() == 0

    def test_ready_rejected_by_vendor(self, make_port, mock_post, vendor_response):
        """Test a vendor rejection fails the transaction with the vendor code"""
        mock_post.return_value = vendor_response({
            'status': 0, 'errorCode': 102, 'errorDescription': 'Invalid API key'
        })

        with pytest.raises(NovinpalException) as exc_info:
            make_port('novinpal').set_amount(1000).ready()

        exc = exc_info.value
        assert exc.error_code == 102
        assert exc.message == 'Invalid API key'
        assert exc.transaction.status == TransactionStatus.FAILED

        log = exc.transaction.logs.get()
        assert log.result_code == '102'
        assert log.result_message == 'Invalid API key'

    def test_ready_without_ref_id(self, make_port, mock_post, vendor_response):
        """Test a success status without a reference id fails the transaction"""
        mock_post.return_value = vendor_response({'status': 1})

        with pytest.raises(NovinpalException) as exc_info:
            make_port('novinpal').set_amount(1000).ready()

        assert exc_info.value.error_code == 'missing_ref_id'
        assert exc_info.value.transaction.status == TransactionStatus.FAILED
        assert exc_info.value.transaction.ref_id is None

    def test_ready_connection_error(self, make_port, mock_post):
        """Test a network failure leaves the transaction pending"""
        mock_post.side_effect = requests.exceptions.ConnectionError('Connection refused')

        with pytest.raises(GatewayConnectionError) as exc_info:
            make_port('novinpal').set_amount(1000).ready()

        assert exc_info.value.error_code == 'connection_error'
        transaction = Transaction.objects.get()
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.ref_id is None

    def test_ready_invalid_json(self, make_port, mock_post, vendor_response):
        response = vendor_response({}, status_code=502)
        response.json.side_effect = ValueError('No JSON object could be decoded')
        mock_post.return_value = response

        with pytest.raises(GatewayConnectionError) as exc_info:
            make_port('novinpal').set_amount(1000).ready()

        assert 'HTTP 502' in str(exc_info.value)

    def test_redirect_before_ready(self, make_port):
        with pytest.raises(GatewayException) as exc_info:
            make_port('novinpal').set_amount(1000).redirect()

        assert exc_info.value.error_code == 'not_initiated'

    def test_too_many_valid_cards(self, make_port):
        with pytest.raises(CardValidationNotSupportedError):
            make_port('novinpal').set_valid_card_numbers(['6037991234561234', '6219861234567890'])

    def test_get_valid_card_numbers(self, make_port):
        port = make_port('novinpal').set_valid_card_number('6037991234561234')

        assert port.get_valid_card_numbers() == ['6037991234561234']


@pytest.mark.django_db
class TestNovinpalVerify:
    """Tests for verifying a Novinpal callback"""

    def test_verify_success(self, make_port, mock_post, vendor_response, pending_transaction):
        transaction = pending_transaction()
        mock_post.return_value = vendor_response({
            'status': 1, 'refId': 'TRK-1', 'cardNumber': '6037991234561234'
        })
        port = make_port('novinpal', transaction_id=transaction.pk, success='1', refId='NP-REF-123')

        result = port.verify(transaction)

        assert result.success is True
        assert result.tracking_code == 'TRK-1'
        assert result.card_number == '603799******1234'

        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.SUCCEEDED
        assert transaction.tracking_code == 'TRK-1'
        assert transaction.card_number == '603799******1234'
        assert transaction.payment_date is not None
        assert transaction.logs.last().result_code == 'SUCCEEDED'

        payload = mock_post.call_args.kwargs['json']
        assert mock_post.call_args.args[0] == NovinpalPort.verify_url
        assert payload == {'api_key': 'novinpal_test_key', 'ref_id': 'NP-REF-123'}

    def test_verify_cancelled_by_payer(self, make_port, mock_post, pending_transaction):
        """Test a cancelled payment fails without a vendor call"""
        transaction = pending_transaction()
        port = make_port('novinpal', transaction_id=transaction.pk, success='0', refId='NP-REF-123')

        with pytest.raises(NovinpalException) as exc_info:
            port.verify(transaction)

        assert exc_info.value.error_code == 'cancelled'
        mock_post.assert_not_called()

        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.logs.get().result_code == 'cancelled'

    def test_verify_missing_ref_id(self, make_port, mock_post, pending_transaction):
        transaction = pending_transaction()
        port = make_port('novinpal', transaction_id=transaction.pk, success='1')

        with pytest.raises(NovinpalException):
            port.verify(transaction)

        mock_post.assert_not_called()

    def test_verify_rejected_by_vendor(self, make_port, mock_post, vendor_response, pending_transaction):
        transaction = pending_transaction()
        mock_post.return_value = vendor_response({
            'status': 0, 'errorCode': 'ref_id_used', 'errorDescription': 'Reference already verified'
        })
        port = make_port('novinpal', transaction_id=transaction.pk, success='1', refId='NP-REF-123')

        with pytest.raises(NovinpalException) as exc_info:
            port.verify(transaction)

        assert exc_info.value.error_code == 'ref_id_used'
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.FAILED

    def test_verify_loses_race(self, make_port, mock_post, vendor_response, pending_transaction):
        """Test a success write after another settlement raises RetryError"""
        transaction = pending_transaction()
        mock_post.return_value = vendor_response({'status': 1, 'refId': 'TRK-1'})
        port = make_port('novinpal', transaction_id=transaction.pk, success='1', refId='NP-REF-123')

        Transaction.objects.transition(transaction.pk, TransactionStatus.FAILED)

        with pytest.raises(RetryError) as exc_info:
            port.verify(transaction)

        assert exc_info.value.transaction.status == TransactionStatus.FAILED
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.tracking_code is None

    def test_verify_failure_loses_race(self, make_port, mock_post, pending_transaction):
        """Test a failure write after a concurrent success leaves the payment intact"""
        transaction = pending_transaction()
        port = make_port('novinpal', transaction_id=transaction.pk, success='0', refId='NP-REF-123')

        Transaction.objects.transition(transaction.pk, TransactionStatus.SUCCEEDED, tracking_code='TRK-1')

        with pytest.raises(RetryError) as exc_info:
            port.verify(transaction)

        assert exc_info.value.transaction.status == TransactionStatus.SUCCEEDED
        mock_post.assert_not_called()
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.SUCCEEDED
        assert transaction.logs.count() == 0

    def test_verify_without_tracking_code(self, make_port, mock_post, vendor_response, pending_transaction):
        transaction = pending_transaction()
        mock_post.return_value = vendor_response({'status': 1})
        port = make_port('novinpal', transaction_id=transaction.pk, success='1', refId='NP-REF-123')

        result = port.verify(transaction)

        assert result.success is True
        assert result.tracking_code is None
        transaction.refresh_from_db()
        assert transaction.tracking_code is None
