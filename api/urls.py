"""Public API surface for the funding gateway.

- /payments/create-coinpayments: create a CoinPayments invoice for a funding request
- /payments/coinpayments-webhook: CoinPayments invoice notifications
- /balance/<user_id>, /payments/<invoice_id>: read-only views for verification
"""

from django.urls import path
from .views_ops import create_coinpayments_invoice, coinpayments_webhook
from .views_read import balance, payment


urlpatterns = [
	path("payments/create-coinpayments", create_coinpayments_invoice, name="create_coinpayments_invoice"),
	path("payments/coinpayments-webhook", coinpayments_webhook, name="coinpayments_webhook"),
	path("payments/<str:invoice_id>", payment, name="payment"),
	path("balance/<str:user_id>", balance, name="balance"),
]
