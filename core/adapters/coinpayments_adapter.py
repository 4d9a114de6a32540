"""Adapter over the CoinPayments V2 merchant invoice API.

Builds the canonical invoice payload, signs it, POSTs it once with a bounded
timeout and hands back an InvoiceCallResult. Expected failures (non-2xx,
malformed JSON, timeouts, empty invoice lists) come back as a failed result
rather than an exception; the service layer decides what to raise.

No automatic retry: invoice creation is not idempotent on the processor side.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import requests
from pydantic import ValidationError as PydanticValidationError

from ..config import GatewayConfig
from ..constants import format_amount
from ..schemas import CreateInvoiceResponse, CreatedInvoice
from .signing import Signer

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
WEBHOOK_NOTIFICATIONS = ["invoicePaid", "invoiceCompleted"]

HEADER_CLIENT = "X-CoinPayments-Client"
HEADER_TIMESTAMP = "X-CoinPayments-Timestamp"
HEADER_SIGNATURE = "X-CoinPayments-Signature"


def signing_timestamp(now: datetime | None = None) -> str:
	"""
	Current UTC time truncated to whole seconds, e.g. 2025-01-31T12:00:05
	"""
	now = now or datetime.now(timezone.utc)
	return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def serialize_payload(payload: dict) -> str:
	# compact separators: the signed bytes must be exactly the bytes sent
	return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


@dataclass
class InvoiceCallResult:
	ok: bool
	status_code: int | None = None
	body: str = ""
	invoice: CreatedInvoice | None = None
	error: str = ""


class CoinPaymentsAdapter:
	"""
	Minimal create-invoice call against the merchant API.
	"""

	def __init__(self, config: GatewayConfig, signer: Signer | None = None, http=requests):
		self.config = config
		self.signer = signer or Signer(config.client_secret)
		self.http = http

	def build_invoice_payload(self, *, user_id: str, order_id: str, amount: Decimal, user_email: str | None = None) -> dict:
		cfg = self.config
		total = format_amount(amount)
		return {
			"currency": cfg.currency,
			"amount": {"total": total},
			"items": [
				{
					"name": f"Add funds to account - ${total}",
					"quantity": {"value": 1, "type": 1},
					"amount": total,
				}
			],
			"payment": {
				"paymentCurrency": cfg.payment_currency,
				"refundEmail": user_email or cfg.refund_fallback_email,
			},
			"webhooks": [
				{
					"notificationsUrl": cfg.webhook_url,
					"notifications": list(WEBHOOK_NOTIFICATIONS),
				}
			],
			"redirects": {
				"returnUrl": cfg.success_url,
				"cancelUrl": cfg.cancel_url,
			},
			"customData": {
				"orderId": order_id,
				"userId": user_id,
			},
		}

	def signed_headers(self, body: str, timestamp: str) -> dict:
		signature = self.signer.sign("POST", self.config.api_url, self.config.client_id, timestamp, body)
		return {
			"Content-Type": "application/json",
			HEADER_CLIENT: self.config.client_id,
			HEADER_TIMESTAMP: timestamp,
			HEADER_SIGNATURE: signature,
		}

	def create_invoice(self, payload: dict, timestamp: str | None = None) -> InvoiceCallResult:
		"""
		POST the payload once. Never raises for expected remote failures.
		"""
		body = serialize_payload(payload)
		headers = self.signed_headers(body, timestamp or signing_timestamp())

		try:
			response = self.http.post(
				self.config.api_url,
				data=body.encode("utf-8"),
				headers=headers,
				timeout=self.config.timeout_seconds,
			)
		except requests.Timeout:
			logger.error("CoinPayments invoice call timed out after %ss", self.config.timeout_seconds)
			return InvoiceCallResult(ok=False, error="timeout")
		except requests.RequestException as e:
			logger.error("CoinPayments invoice call failed: %s", e)
			return InvoiceCallResult(ok=False, error=f"transport error: {e}")

		text = response.text or ""
		if not 200 <= response.status_code < 300:
			logger.error("CoinPayments API error %s: %s", response.status_code, text[:500])
			return InvoiceCallResult(ok=False, status_code=response.status_code, body=text, error=f"CoinPayments API error: {response.status_code}")

		try:
			data = json.loads(text)
		except ValueError:
			logger.error("CoinPayments returned non-JSON body: %s", text[:500])
			return InvoiceCallResult(ok=False, status_code=response.status_code, body=text, error="invalid response: not valid JSON")

		if not isinstance(data, dict):
			return InvoiceCallResult(ok=False, status_code=response.status_code, body=text, error="invalid response: unexpected shape")

		try:
			parsed = CreateInvoiceResponse.model_validate({**data, "invoices": data.get("invoices") or []})
		except PydanticValidationError as e:
			logger.error("CoinPayments response did not match the invoice shape: %s", e.errors()[:1])
			return InvoiceCallResult(ok=False, status_code=response.status_code, body=text, error="invalid response: unexpected shape")

		if not parsed.invoices:
			return InvoiceCallResult(ok=False, status_code=response.status_code, body=text, error="no invoice returned")

		return InvoiceCallResult(
			ok=True,
			status_code=response.status_code,
			body=text,
			invoice=parsed.invoices[0],
		)
