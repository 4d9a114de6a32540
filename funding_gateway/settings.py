"""Django settings for the CoinPayments funding gateway.


This project runs one flow:
- Funding request → signed CoinPayments V2 invoice → pending payment
- CoinPayments webhook → payment status transition → one-time balance credit


Every deployment value comes from the environment; core.config.GatewayConfig
is built from the COINPAYMENTS_* / FUNDING_* values below.
"""

import os
from pathlib import Path
from decimal import Decimal


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_bool(name, default=""):
    v = os.getenv(name, default)
    return v.lower() in ("1", "true", "yes", "on")

#######################
# CoinPayments V2 merchant credentials (set in env; startup check fails without them)
COINPAYMENTS_CLIENT_ID = os.getenv("COINPAYMENTS_CLIENT_ID", "")
COINPAYMENTS_CLIENT_SECRET = os.getenv("COINPAYMENTS_CLIENT_SECRET", "")
COINPAYMENTS_API_URL = os.getenv("COINPAYMENTS_API_URL", "https://a-api.coinpayments.net/api/v2/merchant/invoices")
COINPAYMENTS_TIMEOUT_SECONDS = float(os.getenv("COINPAYMENTS_TIMEOUT_SECONDS", "10"))
COINPAYMENTS_PAYMENT_CURRENCY = os.getenv("COINPAYMENTS_PAYMENT_CURRENCY", "USDT.TRC20")

# Inbound webhook authentication (same HMAC scheme as outbound calls).
# Tolerance 0 disables the timestamp freshness check.
COINPAYMENTS_VERIFY_WEBHOOKS = env_bool("COINPAYMENTS_VERIFY_WEBHOOKS", "1")
COINPAYMENTS_WEBHOOK_TOLERANCE_SECONDS = int(os.getenv("COINPAYMENTS_WEBHOOK_TOLERANCE_SECONDS", "300"))

# This server's externally reachable base URL; the webhook target is derived from it.
SERVER_URL = os.getenv("SERVER_URL", "http://localhost:3002")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3001")
FUNDING_SUCCESS_URL = os.getenv("FUNDING_SUCCESS_URL", f"{FRONTEND_URL}/buy-proxies?payment=success")
FUNDING_CANCEL_URL = os.getenv("FUNDING_CANCEL_URL", f"{FRONTEND_URL}/buy-proxies?payment=cancelled")
FUNDING_REFUND_FALLBACK_EMAIL = os.getenv("FUNDING_REFUND_FALLBACK_EMAIL", "noreply@example.com")

# Funding limits (USD, inclusive)
FUNDING_CURRENCY = "USD"
FUNDING_MIN_AMOUNT = Decimal(os.getenv("FUNDING_MIN_AMOUNT", "10"))
FUNDING_MAX_AMOUNT = Decimal(os.getenv("FUNDING_MAX_AMOUNT", "10000"))
#######################


INSTALLED_APPS = [
	"django.contrib.contenttypes",
	"django.contrib.staticfiles",
	# local apps
	"core",
	"api",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
]


ROOT_URLCONF = "funding_gateway.urls"
TEMPLATES = []


WSGI_APPLICATION = "funding_gateway.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "funding"),
            "USER": os.getenv("POSTGRES_USER", "funding"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "funding"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")  # 'console' | 'json'

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
        "console": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json" if LOG_FORMAT == "json" else "console",
        },
    },
    "loggers": {
        "core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
