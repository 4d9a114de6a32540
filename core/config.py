"""Gateway configuration built once from Django settings and injected downward."""

from dataclasses import dataclass
from decimal import Decimal

from .constants import MAX_FUNDING_AMOUNT, MIN_FUNDING_AMOUNT
from .errors import ConfigurationError

WEBHOOK_PATH = "/api/payments/coinpayments-webhook"
DEFAULT_API_URL = "https://a-api.coinpayments.net/api/v2/merchant/invoices"


@dataclass(frozen=True)
class GatewayConfig:
	client_id: str
	client_secret: str
	api_url: str = DEFAULT_API_URL
	timeout_seconds: float = 10.0
	currency: str = "USD"
	payment_currency: str = "USDT.TRC20"
	server_url: str = "http://localhost:3002"
	success_url: str = "http://localhost:3001/buy-proxies?payment=success"
	cancel_url: str = "http://localhost:3001/buy-proxies?payment=cancelled"
	refund_fallback_email: str = "noreply@example.com"
	min_amount: Decimal = MIN_FUNDING_AMOUNT
	max_amount: Decimal = MAX_FUNDING_AMOUNT
	verify_webhooks: bool = True
	webhook_tolerance_seconds: int = 300

	@property
	def webhook_url(self) -> str:
		return f"{self.server_url.rstrip('/')}{WEBHOOK_PATH}"

	@classmethod
	def from_settings(cls, settings) -> "GatewayConfig":
		"""
		Read COINPAYMENTS_* / FUNDING_* settings; missing credentials are fatal.
		"""
		client_id = getattr(settings, "COINPAYMENTS_CLIENT_ID", "") or ""
		client_secret = getattr(settings, "COINPAYMENTS_CLIENT_SECRET", "") or ""
		if not client_id or not client_secret:
			raise ConfigurationError("Missing CoinPayments configuration: set COINPAYMENTS_CLIENT_ID and COINPAYMENTS_CLIENT_SECRET")

		return cls(
			client_id=client_id,
			client_secret=client_secret,
			api_url=getattr(settings, "COINPAYMENTS_API_URL", DEFAULT_API_URL),
			timeout_seconds=float(getattr(settings, "COINPAYMENTS_TIMEOUT_SECONDS", 10)),
			currency=getattr(settings, "FUNDING_CURRENCY", "USD"),
			payment_currency=getattr(settings, "COINPAYMENTS_PAYMENT_CURRENCY", "USDT.TRC20"),
			server_url=getattr(settings, "SERVER_URL", "http://localhost:3002"),
			success_url=getattr(settings, "FUNDING_SUCCESS_URL", cls.success_url),
			cancel_url=getattr(settings, "FUNDING_CANCEL_URL", cls.cancel_url),
			refund_fallback_email=getattr(settings, "FUNDING_REFUND_FALLBACK_EMAIL", "noreply@example.com"),
			min_amount=Decimal(str(getattr(settings, "FUNDING_MIN_AMOUNT", MIN_FUNDING_AMOUNT))),
			max_amount=Decimal(str(getattr(settings, "FUNDING_MAX_AMOUNT", MAX_FUNDING_AMOUNT))),
			verify_webhooks=bool(getattr(settings, "COINPAYMENTS_VERIFY_WEBHOOKS", True)),
			webhook_tolerance_seconds=int(getattr(settings, "COINPAYMENTS_WEBHOOK_TOLERANCE_SECONDS", 300)),
		)
