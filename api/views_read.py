"""Read-only endpoints to inspect funding state (balances, payments)."""

from decimal import Decimal

from django.http import JsonResponse

from core.store import DjangoPaymentStore


def balance(request, user_id: str):
	"""
	GET: Current spendable balance; users never credited read as 0.00
	"""
	value = DjangoPaymentStore().get_balance(user_id)
	return JsonResponse({"user_id": user_id, "balance": f"{(value or Decimal('0')):.2f}"})


def payment(request, invoice_id: str):
	"""
	GET: Stored payment for a CoinPayments invoice id
	"""
	p = DjangoPaymentStore().find_payment_by_txn_id(invoice_id)
	if p is None:
		return JsonResponse({"error": "Payment not found"}, status=404)
	return JsonResponse({
		"invoice_id": p.external_txn_id,
		"user_id": p.user_id,
		"order_id": p.order_id,
		"amount": f"{p.amount:.2f}",
		"currency": p.currency,
		"crypto_currency": p.crypto_currency,
		"status": p.status,
		"created_at": p.created_at.isoformat(),
		"updated_at": p.updated_at.isoformat(),
	})
