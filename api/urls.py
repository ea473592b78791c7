"""Public API surface for the agent gateway.

- /keys: create / list / revoke API keys for a wallet
- /agent/authorize: spend one on-chain payment for one paid call
- /agent/payments[/<tx_hash>/outcome]: payment history and paid-action outcomes
- /health, /pricing, /balance/<address>: read-only views
"""

from django.urls import path
from .views_keys import keys
from .views_agent import authorize, payment_outcome, payments
from .views_read import health, pricing, balance


urlpatterns = [
	path("health", health),
	path("pricing", pricing),
	path("balance/<str:address>", balance),
	path("keys", keys),
	path("agent/authorize", authorize),
	path("agent/payments", payments),
	path("agent/payments/<str:tx_hash>/outcome", payment_outcome),
]
