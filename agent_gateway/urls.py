"""URL routing for the gateway API + the local chain stub.


The /api/ namespace exposes key management and agent authorization; /stub/chain/
exposes a deterministic token chain used by StubChainReader. In production the
stub routes are disabled and the gateway reads a real node over JSON-RPC.
"""

from django.conf import settings
from django.urls import path, include


urlpatterns = [
	path("api/", include("api.urls")),
]

if settings.ENABLE_CHAIN_STUB_ROUTES:
	urlpatterns += [path("stub/chain/", include("chain_stub.urls"))]
