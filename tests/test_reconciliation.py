from decimal import Decimal
from unittest.mock import patch

import pytest

from core import services
from core.adapters.coinpayments_adapter import CoinPaymentsAdapter
from core.errors import NotFoundError, PersistenceError, ValidationError
from core.models import PaymentStatus
from core.store import DjangoPaymentStore, InMemoryPaymentStore

from .conftest import invoice_response, seed_pending, webhook_body

pytestmark = pytest.mark.payment


@pytest.fixture(params=["django", "memory"])
def store(request):
    if request.param == "django":
        request.getfixturevalue("db")
        return DjangoPaymentStore()
    return InMemoryPaymentStore()


@pytest.mark.parametrize("state,expected", [
    ("Paid", PaymentStatus.COMPLETED),
    ("Completed", PaymentStatus.COMPLETED),
    ("Cancelled", PaymentStatus.FAILED),
    ("Expired", PaymentStatus.FAILED),
    ("Pending", PaymentStatus.PENDING),
    ("Confirmed", PaymentStatus.PENDING),
    ("paid", PaymentStatus.PENDING),
    (None, PaymentStatus.PENDING),
])
def test_invoice_state_mapping(state, expected):
    assert services.map_invoice_state(state) == expected


def test_paid_completes_and_credits_from_zero(store):
    seed_pending(store, amount="25.00")

    result = services.reconcile(webhook_body(state="Paid"), store=store)

    assert result == services.ReconcileResult(status="completed", credited=True)
    assert store.find_payment_by_txn_id("INV1").status == PaymentStatus.COMPLETED
    assert store.get_balance("U1") == Decimal("25.00")


def test_duplicate_paid_delivery_credits_once(store):
    seed_pending(store, amount="25.00")

    first = services.reconcile(webhook_body(state="Paid"), store=store)
    second = services.reconcile(webhook_body(state="Paid"), store=store)

    assert first.credited
    assert not second.credited
    assert second.status == PaymentStatus.COMPLETED
    assert store.get_balance("U1") == Decimal("25.00")


def test_completed_notification_after_paid_is_a_no_op(store):
    seed_pending(store, amount="40.00")

    services.reconcile(webhook_body(state="Paid"), store=store)
    result = services.reconcile(webhook_body(state="Completed"), store=store)

    assert not result.credited
    assert store.get_balance("U1") == Decimal("40.00")


def test_expired_after_paid_does_not_revert(store):
    seed_pending(store, amount="25.00")

    services.reconcile(webhook_body(state="Paid"), store=store)
    result = services.reconcile(webhook_body(state="Expired"), store=store)

    assert result.status == PaymentStatus.COMPLETED
    assert store.find_payment_by_txn_id("INV1").status == PaymentStatus.COMPLETED
    assert store.get_balance("U1") == Decimal("25.00")


def test_paid_after_expired_stays_failed_without_credit(store):
    seed_pending(store)

    services.reconcile(webhook_body(state="Expired"), store=store)
    result = services.reconcile(webhook_body(state="Paid"), store=store)

    assert result.status == PaymentStatus.FAILED
    assert not result.credited
    assert store.get_balance("U1") is None


@pytest.mark.parametrize("state", ["Pending", "Confirmed", "SomethingNew"])
def test_non_final_states_keep_payment_pending(store, state):
    seed_pending(store)

    result = services.reconcile(webhook_body(state=state), store=store)

    assert result.status == PaymentStatus.PENDING
    assert not result.credited
    assert store.get_balance("U1") is None
    # a later Paid still completes it
    assert services.reconcile(webhook_body(state="Paid"), store=store).credited


def test_credits_add_to_existing_balance(store):
    seed_pending(store, invoice_id="INV1", amount="25.00")
    seed_pending(store, invoice_id="INV2", order_id="O2", amount="100.50")

    services.reconcile(webhook_body(invoice_id="INV1", state="Paid"), store=store)
    services.reconcile(webhook_body(invoice_id="INV2", order_id="O2", state="Completed"), store=store)

    assert store.get_balance("U1") == Decimal("125.50")


def test_unknown_invoice_is_not_found_and_changes_nothing(store):
    seed_pending(store, invoice_id="INV1")
    services.reconcile(webhook_body(invoice_id="INV1", state="Paid"), store=store)

    with pytest.raises(NotFoundError):
        services.reconcile(webhook_body(invoice_id="NOPE", state="Paid"), store=store)

    assert store.get_balance("U1") == Decimal("25.00")


@pytest.mark.parametrize("body", [
    {},
    {"invoice": None},
    {"invoice": {"state": "Paid", "customData": {"orderId": "O1", "userId": "U1"}}},
    {"invoice": {"id": "", "state": "Paid", "customData": {"orderId": "O1", "userId": "U1"}}},
    {"invoice": {"id": "INV1", "state": "Paid"}},
    {"invoice": {"id": "INV1", "state": "Paid", "customData": {"userId": "U1"}}},
    {"invoice": {"id": "INV1", "state": "Paid", "customData": {"orderId": "O1", "userId": ""}}},
    ["not", "an", "object"],
])
def test_malformed_notification_is_validation_error_without_side_effects(store, body):
    seed_pending(store)

    with pytest.raises(ValidationError):
        services.reconcile(body, store=store)

    assert store.find_payment_by_txn_id("INV1").status == PaymentStatus.PENDING
    assert store.get_balance("U1") is None


def test_credit_goes_to_stored_owner_when_custom_data_disagrees(store):
    seed_pending(store, user_id="U1")

    services.reconcile(webhook_body(state="Paid", user_id="SOMEONE-ELSE"), store=store)

    assert store.get_balance("U1") == Decimal("25.00")
    assert store.get_balance("SOMEONE-ELSE") is None


def test_failed_credit_rolls_back_status_so_redelivery_can_credit(store):
    seed_pending(store)

    with patch.object(type(store), "upsert_balance", side_effect=PersistenceError("write failed")):
        with pytest.raises(PersistenceError):
            services.reconcile(webhook_body(state="Paid"), store=store)

    assert store.find_payment_by_txn_id("INV1").status == PaymentStatus.PENDING

    result = services.reconcile(webhook_body(state="Paid"), store=store)
    assert result.credited
    assert store.get_balance("U1") == Decimal("25.00")


@pytest.mark.django_db
def test_end_to_end_invoice_then_webhook(gateway_config):
    store = DjangoPaymentStore()
    adapter = CoinPaymentsAdapter(gateway_config)

    with patch("core.adapters.coinpayments_adapter.requests.post", return_value=invoice_response("INV1")):
        created = services.create_invoice("U1", "25.00", "O1", adapter=adapter, store=store)

    assert created.invoice_id == "INV1"
    payment = store.find_payment_by_txn_id("INV1")
    assert (payment.user_id, payment.order_id, payment.amount, payment.status) == ("U1", "O1", Decimal("25.00"), PaymentStatus.PENDING)
    assert store.get_balance("U1") is None

    notification = {"invoice": {"id": "INV1", "state": "Paid", "customData": {"orderId": "O1", "userId": "U1"}}}
    assert services.reconcile(notification, store=store).status == PaymentStatus.COMPLETED
    assert store.get_balance("U1") == Decimal("25.00")

    assert services.reconcile(notification, store=store).status == PaymentStatus.COMPLETED
    assert store.get_balance("U1") == Decimal("25.00")
