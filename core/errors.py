"""Error taxonomy for the authorization core.

Every rejection carries a human-readable `reason` that is echoed to the caller,
except StoreError which is reported as a generic internal failure.
"""


class GatewayError(Exception):
	http_status = 400
	code = "gateway_error"

	def __init__(self, reason: str = ""):
		super().__init__(reason)
		self.reason = reason or self.code


class Unauthorized(GatewayError):
	"""Missing, unknown or revoked credential."""
	http_status = 401
	code = "unauthorized"


class Forbidden(GatewayError):
	"""Identity / ownership mismatch."""
	http_status = 403
	code = "forbidden"


class AlreadyConsumed(GatewayError):
	"""The payment reference has already been spent."""
	http_status = 409
	code = "already_consumed"


class VerificationFailed(GatewayError):
	"""The payment does not satisfy monetary, timing or structural constraints."""
	http_status = 402
	code = "verification_failed"


class UpstreamUnavailable(GatewayError):
	"""Chain unreachable or timed out. Safe to retry with the same reference."""
	http_status = 503
	code = "upstream_unavailable"


class StoreError(GatewayError):
	"""Persistence failure. Never retried and never echoed in detail."""
	http_status = 500
	code = "store_error"


class ChainUnavailable(Exception):
	"""Raised by chain adapters when the node cannot answer in time."""


HTTP_STATUS_BY_CODE = {
	cls.code: cls.http_status
	for cls in (Unauthorized, Forbidden, AlreadyConsumed, VerificationFailed, UpstreamUnavailable, StoreError)
}
