"""Payment verification against the chain.

PaymentVerifier.verify decides whether one transaction pays for one action:
right token contract, confirmed, fresh, a transfer to the treasury, for at least
the price. It never writes anything and never caches chain state.
ChainUnavailable from the reader is not caught here; the gate maps it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .adapters.chain_adapter import ChainReader
from .calldata import decode_transfer_calldata, MalformedCalldata
from .constants import format_units, TOKEN_SYMBOL

logger = logging.getLogger(__name__)

ACCEPT = "ACCEPT"
REJECT = "REJECT"

DEFAULT_MAX_AGE_SECONDS = 5 * 60


@dataclass(frozen=True)
class VerificationResult:
	outcome: str
	reason: str = ""
	payer: Optional[str] = None
	amount_units: Optional[int] = None

	@property
	def accepted(self) -> bool:
		return self.outcome == ACCEPT

	@classmethod
	def reject(cls, reason: str) -> "VerificationResult":
		return cls(outcome=REJECT, reason=reason)


class PaymentVerifier:
	"""
	Stateless; one instance can serve every request.
	"""

	def __init__(
		self,
		chain: ChainReader,
		*,
		token_contract: str,
		treasury_address: str,
		price_units: int,
		max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
	):
		self.chain = chain
		self.token_contract = token_contract.lower()
		self.treasury_address = treasury_address.lower()
		self.price_units = int(price_units)
		self.max_age_seconds = max_age_seconds

	def verify(self, tx_hash: str, *, now: float | None = None) -> VerificationResult:
		tx = self.chain.resolve_transaction(tx_hash)
		if tx is None:
			return VerificationResult.reject("transaction not found")

		if (tx.to or "").lower() != self.token_contract:
			return VerificationResult.reject("wrong contract/destination")

		receipt = self.chain.resolve_receipt(tx_hash)
		if receipt is None or not receipt.succeeded or not receipt.block_ref:
			return VerificationResult.reject("transaction failed or unconfirmed")

		block_time = self.chain.resolve_block_timestamp(receipt.block_ref)
		now = time.time() if now is None else now
		# Blocks stamped slightly ahead of our clock count as brand new
		age = max(0, int(now) - int(block_time))
		if age > self.max_age_seconds:
			return VerificationResult.reject(f"payment too old ({age}s > {self.max_age_seconds}s)")

		try:
			recipient, amount = decode_transfer_calldata(tx.input)
		except MalformedCalldata as e:
			logger.debug("calldata rejected for %s: %s", tx_hash, e)
			return VerificationResult.reject("malformed transfer data")

		if recipient != self.treasury_address:
			return VerificationResult.reject("wrong recipient")

		if amount < self.price_units:
			return VerificationResult.reject(
				f"insufficient amount: expected {format_units(self.price_units)} {TOKEN_SYMBOL}, "
				f"got {format_units(amount)} {TOKEN_SYMBOL}"
			)

		return VerificationResult(outcome=ACCEPT, payer=tx.sender.lower(), amount_units=amount)
