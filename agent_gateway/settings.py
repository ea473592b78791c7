"""Django settings for the agent payment gateway.


This project runs the payment-gated agent flow:
- Agents hold an API key bound to a wallet address (core.ApiCredential)
- Each paid call is backed by one on-chain MNEE transfer to the treasury
- A transfer hash is spent exactly once (core.PaymentRecord)


Chain access is either the local chain_stub app (default) or a JSON-RPC node.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_bool(name, default=""):
    v = os.getenv(name, default)
    return v.lower() in ("1", "true", "yes", "on")

#######################
# Token + payment terms
TOKEN_SYMBOL = os.getenv("TOKEN_SYMBOL", "MNEE")
TOKEN_DECIMALS = int(os.getenv("TOKEN_DECIMALS", "6"))
MNEE_CONTRACT_ADDRESS = os.getenv("MNEE_CONTRACT_ADDRESS", "0x8ccedbAe4916b79da7F3F612EfB2EB93A2bFD6cF")
TREASURY_ADDRESS = os.getenv("TREASURY_ADDRESS", "0x0000000000000000000000000000000000000000")

# Price of one paid action, in whole tokens (string, parsed as Decimal)
GENERATION_PRICE = os.getenv("GENERATION_PRICE", "0.15")

# Freshness window: a transfer older than this cannot pay for anything
PAYMENT_MAX_AGE_SECONDS = int(os.getenv("PAYMENT_MAX_AGE_SECONDS", "300"))

# Chain reader: "stub" reads chain_stub tables, "rpc" talks to CHAIN_RPC_URL
CHAIN_READER_BACKEND = os.getenv("CHAIN_READER_BACKEND", "stub")
CHAIN_RPC_URL = os.getenv("CHAIN_RPC_URL", "https://ethereum-sepolia-rpc.publicnode.com")
CHAIN_RPC_TIMEOUT_SECONDS = float(os.getenv("CHAIN_RPC_TIMEOUT_SECONDS", "5"))

# Enables /stub/chain/* routes (local simulation only)
ENABLE_CHAIN_STUB_ROUTES = env_bool("ENABLE_CHAIN_STUB_ROUTES", "1" if DEBUG else "0")
#######################


INSTALLED_APPS = [
	# local apps
	"core",
	"api",
	"chain_stub",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.middleware.common.CommonMiddleware",
]


ROOT_URLCONF = "agent_gateway.urls"
TEMPLATES = []


WSGI_APPLICATION = "agent_gateway.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "agent_gateway"),
            "USER": os.getenv("POSTGRES_USER", "agent_gateway"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "agent_gateway"),
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


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "plain"},
	},
	"loggers": {
		"core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"chain_stub": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
	},
}


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
