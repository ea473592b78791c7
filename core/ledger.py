"""Payment ledger: the single source of truth for "has this payment been spent".

try_consume is the only replay guard that matters. It is one INSERT against a
unique tx_hash column, so of N concurrent requests for the same hash exactly one
commits and the rest hit IntegrityError. was_consumed is a cheap pre-check that
saves a chain round-trip; it is never trusted on its own.
"""

import logging
from datetime import datetime

from django.db import transaction, DatabaseError, IntegrityError
from django.utils import timezone

from .constants import TOKEN_SYMBOL, format_units
from .errors import StoreError
from .models import ApiCredential, PaymentRecord, PaymentActionStatus

logger = logging.getLogger(__name__)


def normalize_tx_hash(tx_hash) -> str:
	return str(tx_hash or "").strip().lower()


class PaymentLedger:

	@staticmethod
	def was_consumed(tx_hash: str) -> bool:
		try:
			return PaymentRecord.objects.filter(tx_hash=normalize_tx_hash(tx_hash)).exists()
		except DatabaseError as e:
			raise StoreError("ledger lookup failed") from e

	@staticmethod
	def try_consume(
		tx_hash: str,
		*,
		credential: ApiCredential | None,
		payer_address: str,
		amount_units: int,
		action_params: dict | None = None,
	) -> PaymentRecord | None:
		"""
		Spend a payment. Returns the new row, or None if the hash was already spent.
		"""
		try:
			# Own savepoint so a lost race does not poison an enclosing transaction
			with transaction.atomic():
				record = PaymentRecord.objects.create(
					tx_hash=normalize_tx_hash(tx_hash),
					credential=credential,
					payer_address=str(payer_address).lower(),
					amount_units=str(int(amount_units)),
					action_params=action_params or {},
				)
		except IntegrityError:
			logger.info("payment %s already consumed (lost race on insert)", tx_hash)
			return None
		except DatabaseError as e:
			logger.exception("ledger insert failed for %s", tx_hash)
			raise StoreError("ledger insert failed") from e
		return record

	@staticmethod
	def mark_action_completed(tx_hash: str) -> bool:
		return PaymentLedger._resolve_action(tx_hash, PaymentActionStatus.COMPLETED, "")

	@staticmethod
	def mark_action_failed(tx_hash: str, error: str) -> bool:
		return PaymentLedger._resolve_action(tx_hash, PaymentActionStatus.FAILED, error or "unknown error")

	@staticmethod
	def _resolve_action(tx_hash: str, status: str, error: str) -> bool:
		"""
		PENDING -> COMPLETED | FAILED. Returns False if the row is missing or already resolved.
		"""
		try:
			updated = PaymentRecord.objects.filter(
				tx_hash=normalize_tx_hash(tx_hash),
				action_status=PaymentActionStatus.PENDING,
			).update(action_status=status, action_error=error, action_completed_at=timezone.now())
		except DatabaseError as e:
			raise StoreError("ledger update failed") from e
		if updated and status == PaymentActionStatus.FAILED:
			# Paid but not delivered: needs a refund or a manual retry
			logger.warning("paid action failed for %s: %s", tx_hash, error)
		return bool(updated)

	@staticmethod
	def get(tx_hash: str) -> PaymentRecord | None:
		try:
			return PaymentRecord.objects.filter(tx_hash=normalize_tx_hash(tx_hash)).select_related("credential").first()
		except DatabaseError as e:
			raise StoreError("ledger lookup failed") from e

	@staticmethod
	def history_for_credential(credential: ApiCredential, limit: int = 50) -> list[PaymentRecord]:
		try:
			return list(PaymentRecord.objects.filter(credential=credential).order_by("-consumed_at")[:limit])
		except DatabaseError as e:
			raise StoreError("ledger lookup failed") from e

	@staticmethod
	def unreconciled(older_than: datetime | None = None) -> list[PaymentRecord]:
		"""
		FAILED rows, plus PENDING rows consumed before `older_than` (stuck actions).
		"""
		failed = PaymentRecord.objects.filter(action_status=PaymentActionStatus.FAILED)
		rows = list(failed)
		if older_than is not None:
			rows += list(PaymentRecord.objects.filter(
				action_status=PaymentActionStatus.PENDING,
				consumed_at__lt=older_than,
			))
		rows.sort(key=lambda r: r.consumed_at)
		return rows

	@staticmethod
	def summarize(record: PaymentRecord) -> dict:
		return {
			"tx_hash": record.tx_hash,
			"wallet_address": record.payer_address,
			"amount": format_units(record.amount),
			"amount_units": record.amount_units,
			"symbol": TOKEN_SYMBOL,
			"action_params": record.action_params,
			"action_status": record.action_status,
			"action_error": record.action_error or None,
			"consumed_at": record.consumed_at.isoformat(),
		}
