"""Credential store: agent API keys bound to wallet addresses.

Keys look like mnee_agent_<32 hex chars> (128 bits from `secrets`). The prefix
makes them recognisable in logs; the suffix carries all the entropy.
Every mutation is committed before the call returns.
"""

import logging
import secrets

from django.core.exceptions import ValidationError
from django.db import transaction, DatabaseError, IntegrityError
from django.db.models import F
from django.utils import timezone

from .constants import API_KEY_PREFIX, API_KEY_RANDOM_BYTES, mask_token
from .errors import Unauthorized, Forbidden, StoreError
from .models import ApiCredential, CredentialStatus

logger = logging.getLogger(__name__)

# Collisions on 128 random bits do not happen in practice; bail out rather than loop forever
CREATE_ATTEMPTS = 3


def normalize_address(address) -> str:
	return str(address or "").strip().lower()


def generate_api_key() -> str:
	return f"{API_KEY_PREFIX}{secrets.token_hex(API_KEY_RANDOM_BYTES)}"


class CredentialStore:
	"""
	Create / validate / list / revoke API keys and record their usage
	"""

	@staticmethod
	def create(owner_address: str, label: str | None = None) -> ApiCredential:
		owner = normalize_address(owner_address)
		if not owner:
			raise ValidationError("wallet_address required")

		for _ in range(CREATE_ATTEMPTS):
			try:
				with transaction.atomic():
					cred = ApiCredential.objects.create(
						token=generate_api_key(),
						owner_address=owner,
						label=(label or "").strip()[:200],
					)
			except IntegrityError:
				logger.warning("api key collision for owner %s, regenerating", owner)
				continue
			except DatabaseError as e:
				logger.exception("failed to create api key for %s", owner)
				raise StoreError("could not create credential") from e
			logger.info("created api key %s for %s", mask_token(cred.token), owner)
			return cred

		raise StoreError("could not generate a unique credential")

	@staticmethod
	def get(token: str) -> ApiCredential:
		if not token:
			raise Unauthorized("invalid or revoked credential")
		try:
			return ApiCredential.objects.get(token=token)
		except ApiCredential.DoesNotExist:
			raise Unauthorized("invalid or revoked credential")
		except DatabaseError as e:
			raise StoreError("credential lookup failed") from e

	@staticmethod
	def validate(token: str) -> str:
		"""
		Return the owning wallet address of an ACTIVE key; Unauthorized otherwise.
		"""
		cred = CredentialStore.get(token)
		if cred.status != CredentialStatus.ACTIVE:
			raise Unauthorized("invalid or revoked credential")
		return cred.owner_address

	@staticmethod
	def list_by_owner(owner_address: str) -> list[ApiCredential]:
		owner = normalize_address(owner_address)
		if not owner:
			return []
		try:
			return list(ApiCredential.objects.filter(owner_address=owner).order_by("-created_at"))
		except DatabaseError as e:
			raise StoreError("credential listing failed") from e

	@staticmethod
	def revoke(token: str, requesting_owner: str) -> ApiCredential:
		"""
		ACTIVE -> REVOKED, only for the owning wallet. Revoking twice is a no-op.
		"""
		requester = normalize_address(requesting_owner)
		try:
			with transaction.atomic():
				try:
					cred = ApiCredential.objects.select_for_update().get(token=token)
				except ApiCredential.DoesNotExist:
					raise Unauthorized("invalid credential")

				if cred.owner_address != requester:
					logger.info("revoke of %s refused: requester %s is not the owner", mask_token(token), requester)
					raise Forbidden("requesting identity does not own this credential")

				if cred.status == CredentialStatus.REVOKED:
					return cred

				cred.status = CredentialStatus.REVOKED
				cred.save(update_fields=["status"])
		except DatabaseError as e:
			raise StoreError("credential revoke failed") from e

		logger.info("revoked api key %s", mask_token(token))
		return cred

	@staticmethod
	def record_usage(token: str) -> None:
		"""
		Bump usage_count and last_used_at in a single UPDATE (no read-modify-write).
		"""
		try:
			ApiCredential.objects.filter(token=token).update(
				usage_count=F("usage_count") + 1,
				last_used_at=timezone.now(),
			)
		except DatabaseError as e:
			raise StoreError("credential usage update failed") from e

	@staticmethod
	def summarize(cred: ApiCredential) -> dict:
		"""
		Listing-safe view of a key: the full token is never echoed back
		"""
		return {
			"id": str(cred.id),
			"api_key": mask_token(cred.token),
			"wallet_address": cred.owner_address,
			"name": cred.label or None,
			"is_active": cred.is_active,
			"status": cred.status,
			"usage_count": cred.usage_count,
			"created_at": cred.created_at.isoformat(),
			"last_used": cred.last_used_at.isoformat() if cred.last_used_at else None,
		}
