"""Operational endpoints: create a funding invoice and receive CoinPayments webhooks."""

import json
import logging
from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.http import HttpResponseRedirect, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from core import services
from core.adapters.coinpayments_adapter import (
	HEADER_CLIENT, HEADER_SIGNATURE, HEADER_TIMESTAMP, TIMESTAMP_FORMAT, CoinPaymentsAdapter,
)
from core.adapters.signing import Signer
from core.config import GatewayConfig
from core.errors import ConfigurationError, NotFoundError, PersistenceError, RemoteError, ValidationError
from core.store import DjangoPaymentStore

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Failed to create funding payment. Please try again."


def health(request):
	return JsonResponse({"status": "OK", "timestamp": timezone.now().isoformat()})


def payment_success(request):
	return HttpResponseRedirect(settings.FUNDING_SUCCESS_URL)


def payment_cancelled(request):
	return HttpResponseRedirect(settings.FUNDING_CANCEL_URL)


# --- Helpers -----------------------------------------------------------------

def _json_body(request):
	try:
		return json.loads((request.body or b"{}").decode("utf-8"))
	except (UnicodeDecodeError, ValueError):
		return None


def _timestamp_fresh(timestamp: str, tolerance_seconds: int) -> bool:
	if tolerance_seconds <= 0:
		return True
	try:
		sent = datetime.strptime(timestamp, TIMESTAMP_FORMAT).replace(tzinfo=dt_timezone.utc)
	except ValueError:
		return False
	return abs((timezone.now() - sent).total_seconds()) <= tolerance_seconds


def _webhook_authentic(request, config: GatewayConfig) -> bool:
	"""
	CoinPayments signs webhook deliveries like API calls:
	HMAC over BOM + POST + our webhook URL + client id + timestamp + raw body.
	"""
	client_id = request.headers.get(HEADER_CLIENT) or ""
	timestamp = request.headers.get(HEADER_TIMESTAMP) or ""
	signature = request.headers.get(HEADER_SIGNATURE) or ""
	if client_id != config.client_id or not timestamp:
		return False
	if not _timestamp_fresh(timestamp, config.webhook_tolerance_seconds):
		return False
	raw = (request.body or b"").decode("utf-8", errors="replace")
	return Signer(config.client_secret).verify(signature, "POST", config.webhook_url, client_id, timestamp, raw)


# --- Endpoints ---------------------------------------------------------------

@csrf_exempt
def create_coinpayments_invoice(request):
	"""
	POST {userId, amount, orderId, userEmail?} -> {success, invoice_id, status_url, checkout_url}
	"""
	if request.method != "POST":
		return JsonResponse({"error": "POST required"}, status=405)

	body = _json_body(request)
	if not isinstance(body, dict):
		return JsonResponse({"error": "Invalid JSON"}, status=400)

	try:
		config = GatewayConfig.from_settings(settings)
		result = services.create_invoice(
			body.get("userId"),
			body.get("amount"),
			body.get("orderId"),
			body.get("userEmail"),
			adapter=CoinPaymentsAdapter(config),
			store=DjangoPaymentStore(),
		)
	except ValidationError as e:
		return JsonResponse({"error": e.message}, status=400)
	except RemoteError as e:
		logger.error("Invoice creation rejected by CoinPayments: %s (status=%s)", e.message, e.status_code)
		return JsonResponse({"error": RETRY_MESSAGE}, status=502)
	except (PersistenceError, ConfigurationError):
		logger.exception("Invoice creation failed")
		return JsonResponse({"error": RETRY_MESSAGE}, status=500)

	return JsonResponse({
		"success": True,
		"invoice_id": result.invoice_id,
		"status_url": result.status_url,
		"checkout_url": result.checkout_url,
	})


@csrf_exempt
def coinpayments_webhook(request):
	"""
	Accepts CoinPayments V2 invoice notifications and reconciles them.

	4xx answers are final for the sender; 5xx makes CoinPayments redeliver,
	which is safe because crediting only happens on pending -> completed.
	"""
	if request.method != "POST":
		return JsonResponse({"error": "POST required"}, status=405)

	try:
		config = GatewayConfig.from_settings(settings)
	except ConfigurationError:
		logger.exception("Webhook received without gateway configuration")
		return JsonResponse({"error": "Internal server error"}, status=500)

	if config.verify_webhooks and not _webhook_authentic(request, config):
		logger.warning("Rejected webhook with missing or bad signature")
		return JsonResponse({"error": "Invalid signature"}, status=401)

	payload = _json_body(request)
	if payload is None:
		return JsonResponse({"error": "Invalid JSON"}, status=400)

	try:
		result = services.reconcile(payload, store=DjangoPaymentStore())
	except ValidationError as e:
		logger.warning("Invalid webhook data: %s", e.message)
		return JsonResponse({"error": "Invalid webhook data"}, status=400)
	except NotFoundError as e:
		logger.warning("%s", e)
		return JsonResponse({"error": "Payment not found"}, status=404)
	except PersistenceError:
		logger.exception("Webhook reconciliation failed")
		return JsonResponse({"error": "Failed to update payment"}, status=500)

	return JsonResponse({"success": True, "status": result.status})
