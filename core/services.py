"""Business orchestration for the funding flow.

This module coordinates: validate -> CoinPayments invoice -> pending payment, and
webhook -> status transition -> one-time balance credit.
Credits happen only on the pending -> completed transition, decided by a
conditional status update inside one store.atomic() scope.
"""

import logging
from dataclasses import dataclass

from .adapters.coinpayments_adapter import CoinPaymentsAdapter
from .constants import parse_funding_amount
from .errors import NotFoundError, PersistenceError, RemoteError, ValidationError
from .models import PaymentStatus, TERMINAL_STATUSES
from .schemas import WebhookNotification
from .store import PaymentStore

logger = logging.getLogger(__name__)

# CoinPayments V2 invoice states -> internal status. Anything else stays pending.
INVOICE_STATE_MAP = {
	"Paid": PaymentStatus.COMPLETED.value,
	"Completed": PaymentStatus.COMPLETED.value,
	"Cancelled": PaymentStatus.FAILED.value,
	"Expired": PaymentStatus.FAILED.value,
	"Pending": PaymentStatus.PENDING.value,
}


def map_invoice_state(state: str | None) -> str:
	return INVOICE_STATE_MAP.get(state or "", PaymentStatus.PENDING.value)


@dataclass(frozen=True)
class InvoiceResult:
	invoice_id: str
	checkout_url: str | None
	status_url: str | None


@dataclass(frozen=True)
class ReconcileResult:
	status: str
	credited: bool = False


def create_invoice(user_id, amount, order_id, user_email=None, *, adapter: CoinPaymentsAdapter, store: PaymentStore) -> InvoiceResult:
	"""
	Create a CoinPayments invoice for a funding attempt and persist it as a pending payment.

	The remote call happens exactly once. If persisting fails afterwards the
	invoice already exists remotely; that is surfaced as PersistenceError and
	left to operators instead of creating a second invoice.
	"""
	if not user_id or not order_id:
		raise ValidationError("Missing required fields")
	cfg = adapter.config
	value = parse_funding_amount(amount, cfg.min_amount, cfg.max_amount)

	logger.info("Creating CoinPayments invoice order=%s user=%s amount=%s", order_id, user_id, value)
	payload = adapter.build_invoice_payload(user_id=str(user_id), order_id=str(order_id), amount=value, user_email=user_email)
	result = adapter.create_invoice(payload)
	if not result.ok:
		raise RemoteError(result.error or "CoinPayments invoice creation failed", status_code=result.status_code, body=result.body)

	invoice = result.invoice
	try:
		store.create_payment(
			user_id=str(user_id),
			order_id=str(order_id),
			payment_id=invoice.id,
			external_txn_id=invoice.id,
			amount=value,
			currency=cfg.currency,
			crypto_currency=cfg.payment_currency,
			status=PaymentStatus.PENDING,
		)
	except PersistenceError:
		logger.error("Invoice %s created remotely but could not be stored; needs manual reconciliation", invoice.id)
		raise

	logger.info("Invoice %s stored as pending for user %s", invoice.id, user_id)
	return InvoiceResult(invoice_id=invoice.id, checkout_url=invoice.navigation_link, status_url=invoice.navigation_link)


def reconcile(notification, *, store: PaymentStore) -> ReconcileResult:
	"""
	Apply a CoinPayments webhook to the matching payment; credit the owner at most once.

	Raises ValidationError (bad shape) or NotFoundError (unknown invoice) without
	touching state. PersistenceError propagates so the notifier retries delivery.
	"""
	if not isinstance(notification, WebhookNotification):
		notification = WebhookNotification.parse(notification)
	invoice = notification.invoice
	new_status = map_invoice_state(invoice.state)

	with store.atomic():
		payment = store.find_payment_by_txn_id(invoice.id)
		if payment is None:
			raise NotFoundError(f"Payment not found: {invoice.id}")

		if payment.user_id != invoice.custom_data.user_id:
			logger.warning(
				"Webhook customData.userId=%s differs from stored owner %s for invoice %s; crediting stored owner",
				invoice.custom_data.user_id, payment.user_id, invoice.id,
			)

		previous = payment.status
		if previous in TERMINAL_STATUSES:
			# redelivery or out-of-order state after a final one: nothing to apply
			logger.info("Invoice %s already %s; ignoring state %s", invoice.id, previous, invoice.state)
			return ReconcileResult(status=previous)

		if not store.conditionally_update_status(invoice.id, new_status, expected=PaymentStatus.PENDING):
			# lost the race against a concurrent delivery
			current = store.find_payment_by_txn_id(invoice.id)
			logger.info("Invoice %s moved concurrently to %s; no credit applied", invoice.id, current.status)
			return ReconcileResult(status=current.status)

		logger.info("Invoice %s status %s -> %s (state=%s)", invoice.id, previous, new_status, invoice.state)
		if new_status != PaymentStatus.COMPLETED:
			return ReconcileResult(status=new_status)

		current_balance = store.lock_balance(payment.user_id)
		new_balance = current_balance + payment.amount
		store.upsert_balance(payment.user_id, new_balance)

	logger.info("Credited %s to user %s for invoice %s; balance now %s", payment.amount, payment.user_id, invoice.id, new_balance)
	return ReconcileResult(status=new_status, credited=True)
