"""
Shared fixtures for payments tests.

Vendor HTTP calls are mocked at requests.post so no test reaches a real
gateway.
"""

import pytest
from unittest.mock import Mock, patch

from payments.gateways import Gateway, GatewayConfig
from payments.models import Transaction

CALLBACK_URL = 'https://shop.example.com/payments/callback/'

TEST_PAYMENT_GATEWAYS = {
    'DEFAULT_PORT': 'NOVINPAL',
    'CALLBACK_URL': CALLBACK_URL,
    'REQUEST_TIMEOUT': 10,
    'PENDING_EXPIRY_MINUTES': 30,
    'PORTS': {
        'NOVINPAL': {'api_key': 'novinpal_test_key'},
        'ZARINPAL': {'merchant_id': 'zarinpal-test-merchant', 'sandbox': True},
        'RAZORPAY': {'key_id': 'rzp_test_dummy_key', 'key_secret': 'dummy_secret'},
    },
}


@pytest.fixture
def gateway_config():
    """Explicit gateway configuration used by port and resolver tests"""
    return GatewayConfig(
        ports={
            'novinpal': {'api_key': 'novinpal_test_key'},
            'zarinpal': {'merchant_id': 'zarinpal-test-merchant', 'sandbox': True},
            'razorpay': {'key_id': 'rzp_test_dummy_key', 'key_secret': 'dummy_secret'},
        },
        default_port='NOVINPAL',
        callback_url=CALLBACK_URL,
        request_timeout=10,
    )


@pytest.fixture
def mock_post():
    """Fixture for mocked outbound gateway calls"""
    with patch('payments.gateways.base.requests.post') as mock_post:
        yield mock_post


@pytest.fixture
def vendor_response():
    """Build a fake requests.Response returning the given JSON body"""
    def build(payload, status_code=200):
        response = Mock()
        response.status_code = status_code
        response.json.return_value = payload
        return response
    return build


@pytest.fixture
def make_port(gateway_config, rf):
    """Resolve a port wired to a request carrying the given callback params"""
    def build(name, **params):
        request = rf.get('/api/payments/callback/', params)
        return Gateway(config=gateway_config, request=request).make(name)
    return build


@pytest.fixture
def pending_transaction():
    """Create a pending transaction with a stored reference token"""
    def build(port='NOVINPAL', price=10000, ref_id='NP-REF-123'):
        transaction = Transaction.objects.create_pending(port=port, price=price)
        if ref_id:
            Transaction.objects.set_ref_id(transaction.pk, ref_id)
            transaction.refresh_from_db()
        return transaction
    return build
