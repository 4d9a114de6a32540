"""URL routing for the funding gateway.


/api/ exposes invoice creation, the CoinPayments webhook and read-only lookups;
/health and the payment redirect endpoints live at the root.
"""

from django.urls import path, include

from api.views_ops import health, payment_cancelled, payment_success


urlpatterns = [
	path("health", health),
	path("payment-success", payment_success),
	path("payment-cancelled", payment_cancelled),
	path("api/", include("api.urls")),
]
