"""Read-only chain access for payment verification.

ChainReader is the capability the verifier depends on. Two implementations:
- JsonRpcChainReader: Ethereum JSON-RPC over HTTP (requests), every call bounded by a timeout
- StubChainReader: reads the chain_stub tables for local runs and tests

Neither caches anything: each authorization reads the chain fresh.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import requests
from django.conf import settings

from chain_stub.models import ChainStubBalance, ChainStubTransaction, ChainStubBlock, ChainStubTxStatus
from core.errors import ChainUnavailable

logger = logging.getLogger(__name__)

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
BALANCE_OF_SELECTOR = "70a08231"


@dataclass(frozen=True)
class ChainTransaction:
	tx_hash: str
	sender: str
	to: Optional[str]
	input: str
	block_ref: Optional[str]


@dataclass(frozen=True)
class ChainReceipt:
	tx_hash: str
	succeeded: bool
	block_ref: Optional[str]


class ChainReader(Protocol):
	def resolve_transaction(self, tx_hash: str) -> Optional[ChainTransaction]: ...

	def resolve_receipt(self, tx_hash: str) -> Optional[ChainReceipt]: ...

	def resolve_block_timestamp(self, block_ref: str) -> int: ...

	def read_token_balance(self, address: str) -> int: ...


class JsonRpcChainReader:
	"""
	Minimal eth_* client. Node errors, HTTP errors and timeouts become ChainUnavailable.
	"""

	def __init__(self, rpc_url: str, *, token_contract: str, timeout: float = 5.0, session: requests.Session | None = None):
		self.rpc_url = rpc_url
		self.token_contract = token_contract
		self.timeout = timeout
		self.session = session or requests.Session()
		self._next_id = 0

	def _call(self, method: str, params: list):
		self._next_id += 1
		body = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
		try:
			r = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
			r.raise_for_status()
			payload = r.json()
		except requests.Timeout as e:
			logger.warning("rpc %s timed out after %ss", method, self.timeout)
			raise ChainUnavailable(f"{method} timed out") from e
		except (requests.RequestException, ValueError) as e:
			logger.warning("rpc %s failed: %s", method, e)
			raise ChainUnavailable(f"{method} failed") from e

		if not isinstance(payload, dict):
			logger.warning("rpc %s returned a non-object reply", method)
			raise ChainUnavailable(f"{method} returned a malformed reply")
		if payload.get("error"):
			logger.warning("rpc %s returned error: %s", method, payload["error"])
			raise ChainUnavailable(f"{method} returned an error")
		return payload.get("result")

	def resolve_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
		if not TX_HASH_RE.match(tx_hash or ""):
			return None
		res = self._call("eth_getTransactionByHash", [tx_hash])
		if not isinstance(res, dict):
			return None
		return ChainTransaction(
			tx_hash=tx_hash,
			sender=str(res.get("from") or ""),
			to=res.get("to"),
			input=str(res.get("input") or "0x"),
			block_ref=res.get("blockHash"),
		)

	def resolve_receipt(self, tx_hash: str) -> Optional[ChainReceipt]:
		if not TX_HASH_RE.match(tx_hash or ""):
			return None
		res = self._call("eth_getTransactionReceipt", [tx_hash])
		if not isinstance(res, dict):
			return None
		# Post-Byzantium receipts carry status 0x1 (success) / 0x0 (reverted)
		status = str(res.get("status") or "0x0").lower()
		return ChainReceipt(tx_hash=tx_hash, succeeded=status in ("0x1", "0x01"), block_ref=res.get("blockHash"))

	def resolve_block_timestamp(self, block_ref: str) -> int:
		res = self._call("eth_getBlockByHash", [block_ref, False])
		if not isinstance(res, dict) or "timestamp" not in res:
			raise ChainUnavailable(f"block {block_ref} not available")
		try:
			return int(str(res["timestamp"]), 16)
		except ValueError as e:
			raise ChainUnavailable(f"block {block_ref} has a malformed timestamp") from e

	def read_token_balance(self, address: str) -> int:
		data = "0x" + BALANCE_OF_SELECTOR + address.lower().replace("0x", "").rjust(64, "0")
		out = self._call("eth_call", [{"to": self.token_contract, "data": data}, "latest"])
		if not isinstance(out, str) or not out.startswith("0x"):
			raise ChainUnavailable("balanceOf returned no data")
		try:
			return int(out, 16) if len(out) > 2 else 0
		except ValueError as e:
			raise ChainUnavailable("balanceOf returned malformed data") from e


class StubChainReader:
	"""
	Answers chain queries from chain_stub rows. Pending txs have no receipt.
	"""

	def resolve_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
		tx = ChainStubTransaction.objects.select_related("block").filter(tx_hash__iexact=tx_hash).first()
		if tx is None:
			return None
		return ChainTransaction(
			tx_hash=tx.tx_hash,
			sender=tx.from_address,
			to=tx.to_address,
			input=tx.input_data,
			block_ref=tx.block.block_hash if tx.block else None,
		)

	def resolve_receipt(self, tx_hash: str) -> Optional[ChainReceipt]:
		tx = ChainStubTransaction.objects.select_related("block").filter(tx_hash__iexact=tx_hash).first()
		if tx is None or tx.status == ChainStubTxStatus.PENDING or tx.block is None:
			return None
		return ChainReceipt(
			tx_hash=tx.tx_hash,
			succeeded=tx.status == ChainStubTxStatus.SUCCESS,
			block_ref=tx.block.block_hash,
		)

	def resolve_block_timestamp(self, block_ref: str) -> int:
		try:
			block = ChainStubBlock.objects.get(block_hash=block_ref)
		except ChainStubBlock.DoesNotExist:
			raise ChainUnavailable(f"block {block_ref} not available")
		return int(block.timestamp.timestamp())

	def read_token_balance(self, address: str) -> int:
		bal = ChainStubBalance.objects.filter(address=address.lower()).first()
		return int(bal.balance_units) if bal else 0


def get_chain_reader() -> ChainReader:
	backend = getattr(settings, "CHAIN_READER_BACKEND", "stub")
	if backend == "rpc":
		return JsonRpcChainReader(
			settings.CHAIN_RPC_URL,
			token_contract=settings.MNEE_CONTRACT_ADDRESS,
			timeout=getattr(settings, "CHAIN_RPC_TIMEOUT_SECONDS", 5.0),
		)
	if backend == "stub":
		return StubChainReader()
	raise ValueError(f"unknown CHAIN_READER_BACKEND: {backend}")
