"""Startup checks: the gateway refuses to run without CoinPayments credentials."""

from django.conf import settings
from django.core.checks import Error, register

from .config import GatewayConfig
from .errors import ConfigurationError


@register()
def coinpayments_credentials(app_configs, **kwargs):
	try:
		GatewayConfig.from_settings(settings)
	except ConfigurationError as e:
		return [Error(str(e), hint="Export both variables before starting the server.", id="core.E001")]
	return []
