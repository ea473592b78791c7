"""In-process token chain tables that simulate confirmed ERC-20 state.

Blocks, transfer transactions (with real transfer calldata) and per-address
balances. StubChainReader answers the gateway's chain queries from these rows.
"""

import secrets
import uuid
from django.db import models


def gen_block_hash():
	# Named function = migration-friendly
	return "0x" + secrets.token_hex(32)


def gen_tx_hash():
	return "0x" + secrets.token_hex(32)


class ChainStubBlock(models.Model):
	"""
	A mined block; only its timestamp matters to the gateway
	"""
	id = models.BigAutoField(primary_key=True)
	block_hash = models.CharField(max_length=66, unique=True, default=gen_block_hash)
	timestamp = models.DateTimeField()


class ChainStubTxStatus(models.TextChoices):
	SUCCESS = "success", "Success"
	REVERTED = "reverted", "Reverted"
	PENDING = "pending", "Pending"


class ChainStubTransaction(models.Model):
	"""
	A contract call as seen on chain: to = token contract, input = transfer calldata
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	tx_hash = models.CharField(max_length=66, unique=True, default=gen_tx_hash)
	from_address = models.CharField(max_length=42)
	to_address = models.CharField(max_length=42)
	input_data = models.TextField(default="0x")
	status = models.CharField(max_length=16, choices=ChainStubTxStatus.choices, default=ChainStubTxStatus.SUCCESS)
	block = models.ForeignKey(ChainStubBlock, null=True, blank=True, on_delete=models.SET_NULL, related_name="transactions")


class ChainStubBalance(models.Model):
	"""
	Tracks per-address token balance as if confirmed on-chain
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	address = models.CharField(max_length=42, unique=True)
	balance_units = models.BigIntegerField(default=0)
