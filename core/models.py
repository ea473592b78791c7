"""Database models for the gateway.


Tables:
- ApiCredential: agent API key bound to a wallet address, ACTIVE or REVOKED
- PaymentRecord: append-only log of spent payment transactions (one row per tx hash)

Wallet addresses and tx hashes are stored lower-cased, so plain equality lookups
are case-insensitive.
"""

import uuid
from django.db import models


class CredentialStatus(models.TextChoices):
	ACTIVE = "ACTIVE", "Active"
	REVOKED = "REVOKED", "Revoked"


class ApiCredential(models.Model):
	"""
	Bearer API key owned by a wallet address.

	token is unique for the lifetime of the table; a REVOKED key is never reactivated.
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	token = models.CharField(max_length=64, unique=True)
	owner_address = models.CharField(max_length=128, db_index=True)
	label = models.CharField(max_length=200, blank=True, default="")
	status = models.CharField(max_length=16, choices=CredentialStatus.choices, default=CredentialStatus.ACTIVE)
	usage_count = models.PositiveBigIntegerField(default=0)
	created_at = models.DateTimeField(auto_now_add=True)
	last_used_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ["-created_at"]

	@property
	def is_active(self) -> bool:
		return self.status == CredentialStatus.ACTIVE


class PaymentActionStatus(models.TextChoices):
	PENDING = "PENDING", "Pending"
	COMPLETED = "COMPLETED", "Completed"
	FAILED = "FAILED", "Failed"


class PaymentRecord(models.Model):
	"""
	A payment transaction that has been spent on one paid action.

	tx_hash is unique: inserting the row *is* spending the payment, so two
	concurrent requests for the same hash cannot both succeed.
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	tx_hash = models.CharField(max_length=128, unique=True)
	credential = models.ForeignKey(ApiCredential, null=True, blank=True, on_delete=models.SET_NULL, related_name="payments")
	payer_address = models.CharField(max_length=128, db_index=True)
	amount_units = models.CharField(max_length=78) # uint256 as decimal string
	action_params = models.JSONField(default=dict, blank=True)
	consumed_at = models.DateTimeField(auto_now_add=True)
	action_status = models.CharField(max_length=16, choices=PaymentActionStatus.choices, default=PaymentActionStatus.PENDING)
	action_error = models.TextField(blank=True, default="")
	action_completed_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ["-consumed_at"]

	@property
	def amount(self) -> int:
		return int(self.amount_units)
