import json
from decimal import Decimal
from unittest.mock import Mock

import pytest

from core.config import GatewayConfig
from core.store import InMemoryPaymentStore

CLIENT_ID = "test-client"
CLIENT_SECRET = "test-secret"
API_URL = "https://a-api.coinpayments.net/api/v2/merchant/invoices"


def pytest_configure(config):
    config.addinivalue_line("markers", "payment: mark test as payment-related")


@pytest.fixture(autouse=True)
def gateway_settings(settings):
    """Credentials and URLs every test runs with; individual tests override as needed."""
    settings.COINPAYMENTS_CLIENT_ID = CLIENT_ID
    settings.COINPAYMENTS_CLIENT_SECRET = CLIENT_SECRET
    settings.COINPAYMENTS_API_URL = API_URL
    settings.COINPAYMENTS_VERIFY_WEBHOOKS = False
    settings.COINPAYMENTS_WEBHOOK_TOLERANCE_SECONDS = 300
    settings.SERVER_URL = "https://funding.example.com"
    settings.FUNDING_SUCCESS_URL = "https://shop.example.com/buy-proxies?payment=success"
    settings.FUNDING_CANCEL_URL = "https://shop.example.com/buy-proxies?payment=cancelled"
    return settings


@pytest.fixture
def gateway_config(gateway_settings):
    return GatewayConfig.from_settings(gateway_settings)


@pytest.fixture
def memory_store():
    return InMemoryPaymentStore()


def provider_response(status_code=200, payload=None, text=None):
    """Stand-in for requests.Response as seen by the adapter."""
    body = text if text is not None else json.dumps(payload if payload is not None else {})
    return Mock(status_code=status_code, text=body)


def invoice_response(invoice_id="INV1", link="https://checkout.coinpayments.net/invoice/INV1"):
    return provider_response(200, {"invoices": [{"id": invoice_id, "link": link, "checkoutLink": link + "/checkout"}]})


def webhook_body(invoice_id="INV1", state="Paid", order_id="O1", user_id="U1"):
    return {
        "id": "wh-1",
        "type": "Invoice" + state,
        "timestamp": "2025-01-31T12:00:05",
        "invoice": {"id": invoice_id, "state": state, "customData": {"orderId": order_id, "userId": user_id}},
    }


def seed_pending(store, invoice_id="INV1", user_id="U1", order_id="O1", amount="25.00"):
    return store.create_payment(
        user_id=user_id,
        order_id=order_id,
        payment_id=invoice_id,
        external_txn_id=invoice_id,
        amount=Decimal(amount),
        currency="USD",
        crypto_currency="USDT.TRC20",
    )
