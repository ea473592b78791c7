"""Business orchestration: the authorization gate for paid agent calls.

One pass per request, no state kept between requests:

	START -> CREDENTIAL_CHECKED -> IDENTITY_BOUND -> REPLAY_CHECKED
	      -> PAYMENT_VERIFIED -> CONSUMED

Any step can end in a rejection (a GatewayError subclass). Nothing is written
until CONSUMED, where the ledger insert and the usage bump share one transaction.
No lock is held while the chain is being read.

A key revoked after its validate() step still lets that one in-flight request
finish; every later request sees REVOKED.
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction

from .adapters.chain_adapter import ChainReader, get_chain_reader
from .constants import format_units, generation_price_units, mask_token
from .credentials import CredentialStore, normalize_address
from .errors import (
	GatewayError, Unauthorized, Forbidden, AlreadyConsumed, VerificationFailed, UpstreamUnavailable, ChainUnavailable, StoreError,
)
from .ledger import PaymentLedger, normalize_tx_hash
from .verifier import PaymentVerifier, DEFAULT_MAX_AGE_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationGrant:
	"""
	Permission to run the paid action exactly once for this payment
	"""
	grant_id: str
	tx_hash: str
	payer: str
	amount_units: int
	credential_id: str

	def as_dict(self) -> dict:
		return {
			"authorized": True,
			"grant_id": self.grant_id,
			"tx_hash": self.tx_hash,
			"payer": self.payer,
			"amount": format_units(self.amount_units),
			"amount_units": str(self.amount_units),
		}


class AuthorizationGate:

	def __init__(
		self,
		verifier: PaymentVerifier,
		*,
		credentials: type[CredentialStore] = CredentialStore,
		ledger: type[PaymentLedger] = PaymentLedger,
	):
		self.verifier = verifier
		self.credentials = credentials
		self.ledger = ledger

	def authorize(self, *, api_key: str, claimed_address: str, tx_hash: str, action_params: dict | None = None) -> AuthorizationGrant:
		claimed = normalize_address(claimed_address)
		tx_hash = normalize_tx_hash(tx_hash)
		key_label = mask_token(api_key)

		# START -> CREDENTIAL_CHECKED
		try:
			owner = self.credentials.validate(api_key)
		except Unauthorized:
			raise self._reject(Unauthorized("invalid or revoked credential"), key_label, tx_hash)

		# -> IDENTITY_BOUND
		if owner != claimed:
			raise self._reject(Forbidden("claimed identity does not own this credential"), key_label, tx_hash)

		# -> REPLAY_CHECKED (advisory; try_consume below is the real guard)
		if self.ledger.was_consumed(tx_hash):
			raise self._reject(AlreadyConsumed("payment already used"), key_label, tx_hash)

		# -> PAYMENT_VERIFIED
		try:
			result = self.verifier.verify(tx_hash)
		except ChainUnavailable as e:
			logger.warning("chain read failed for %s: %s", tx_hash, e)
			raise self._reject(UpstreamUnavailable("transaction verification failed"), key_label, tx_hash)
		if not result.accepted:
			raise self._reject(VerificationFailed(result.reason), key_label, tx_hash)

		if result.payer != claimed:
			raise self._reject(Forbidden("payment not sent from claimed identity"), key_label, tx_hash)

		# -> CONSUMED
		credential = self.credentials.get(api_key)
		# Spend and usage bump commit together or not at all
		with transaction.atomic():
			record = self.ledger.try_consume(
				tx_hash,
				credential=credential,
				payer_address=claimed,
				amount_units=result.amount_units,
				action_params=action_params,
			)
			if record is not None:
				self.credentials.record_usage(api_key)
		if record is None:
			raise self._reject(AlreadyConsumed("payment already used"), key_label, tx_hash)

		logger.info(
			"authorized %s for %s: %s units via %s", key_label, claimed, result.amount_units, tx_hash,
		)
		return AuthorizationGrant(
			grant_id=str(record.id),
			tx_hash=record.tx_hash,
			payer=claimed,
			amount_units=result.amount_units,
			credential_id=str(credential.id),
		)

	@staticmethod
	def _reject(error: GatewayError, key_label: str, tx_hash: str) -> GatewayError:
		logger.info("rejected %s / %s: %s", key_label, tx_hash, error.reason)
		return error


def build_gate(chain: ChainReader | None = None) -> AuthorizationGate:
	"""
	Wire a gate from settings. Tests pass their own chain reader.
	"""
	verifier = PaymentVerifier(
		chain or get_chain_reader(),
		token_contract=settings.MNEE_CONTRACT_ADDRESS,
		treasury_address=settings.TREASURY_ADDRESS,
		price_units=generation_price_units(),
		max_age_seconds=getattr(settings, "PAYMENT_MAX_AGE_SECONDS", DEFAULT_MAX_AGE_SECONDS),
	)
	return AuthorizationGate(verifier)


def authorize_request(gate: AuthorizationGate, *, api_key: str, wallet_address: str, tx_hash: str, action_params: dict | None = None) -> dict:
	"""
	Inbound contract: {authorized, reason?, payer?, amount?, ...}.

	StoreError is deliberately not converted; callers report it as an internal failure.
	"""
	try:
		grant = gate.authorize(api_key=api_key, claimed_address=wallet_address, tx_hash=tx_hash, action_params=action_params)
	except StoreError:
		raise
	except GatewayError as e:
		return {"authorized": False, "reason": e.reason, "error_code": e.code}
	return grant.as_dict()
