import pytest
import requests

from chain_stub.models import ChainStubTxStatus
from chain_stub.simulator import submit_transfer, credit
from core.adapters.chain_adapter import JsonRpcChainReader, StubChainReader, get_chain_reader
from core.calldata import encode_transfer_calldata
from core.credentials import CredentialStore
from core.errors import ChainUnavailable, UpstreamUnavailable
from core.ledger import PaymentLedger
from core.services import build_gate

from .fakes import OWNER, TREASURY, TOKEN_CONTRACT

TX = "0x" + "ab" * 32
BLOCK = "0x" + "cd" * 32


class FakeResponse:
	def __init__(self, payload, status=200):
		self.payload = payload
		self.status_code = status

	def raise_for_status(self):
		if self.status_code >= 400:
			raise requests.HTTPError(f"{self.status_code} error")

	def json(self):
		return self.payload


class FakeSession:
	"""
	Answers JSON-RPC by method name; records every request body.
	"""

	def __init__(self, results=None, exc=None, status=200, raw=None):
		self.results = results or {}
		self.exc = exc
		self.raw = raw
		self.status = status
		self.requests = []

	def post(self, url, json=None, timeout=None):
		self.requests.append({"url": url, "body": json, "timeout": timeout})
		if self.exc is not None:
			raise self.exc
		if self.raw is not None:
			return FakeResponse(self.raw, self.status)
		method = json["method"]
		result = self.results.get(method)
		if isinstance(result, dict) and "error" in result:
			return FakeResponse({"jsonrpc": "2.0", "id": json["id"], "error": result["error"]}, self.status)
		return FakeResponse({"jsonrpc": "2.0", "id": json["id"], "result": result}, self.status)


def rpc_reader(**kwargs):
	return JsonRpcChainReader("http://node.test", token_contract=TOKEN_CONTRACT, timeout=2.5, session=FakeSession(**kwargs))


def test_rpc_resolves_transaction_receipt_and_block() -> None:
	reader = rpc_reader(results={
		"eth_getTransactionByHash": {
			"from": OWNER, "to": TOKEN_CONTRACT, "input": encode_transfer_calldata(TREASURY, 5), "blockHash": BLOCK,
		},
		"eth_getTransactionReceipt": {"status": "0x1", "blockHash": BLOCK},
		"eth_getBlockByHash": {"timestamp": hex(1_760_000_000)},
	})

	tx = reader.resolve_transaction(TX)
	assert tx.sender == OWNER
	assert tx.to == TOKEN_CONTRACT
	assert tx.block_ref == BLOCK
	assert reader.resolve_receipt(TX).succeeded is True
	assert reader.resolve_block_timestamp(BLOCK) == 1_760_000_000

	sent = reader.session.requests
	assert [r["body"]["method"] for r in sent] == ["eth_getTransactionByHash", "eth_getTransactionReceipt", "eth_getBlockByHash"]
	assert all(r["timeout"] == 2.5 for r in sent)
	assert sent[2]["body"]["params"] == [BLOCK, False]


def test_rpc_reverted_receipt_and_missing_tx() -> None:
	reader = rpc_reader(results={"eth_getTransactionReceipt": {"status": "0x0", "blockHash": BLOCK}})
	assert reader.resolve_transaction(TX) is None
	assert reader.resolve_receipt(TX).succeeded is False


def test_rpc_malformed_hash_never_hits_the_node() -> None:
	reader = rpc_reader()
	assert reader.resolve_transaction("tx1") is None
	assert reader.resolve_receipt("0x1234") is None
	assert reader.session.requests == []


@pytest.mark.parametrize("kwargs", [
	{"exc": requests.Timeout("slow")},
	{"exc": requests.ConnectionError("refused")},
	{"status": 502},
	{"results": {"eth_getTransactionByHash": {"error": {"code": -32000, "message": "overloaded"}}}},
	{"raw": []},
	{"raw": "busy"},
])
def test_rpc_failures_become_chain_unavailable(kwargs) -> None:
	with pytest.raises(ChainUnavailable):
		rpc_reader(**kwargs).resolve_transaction(TX)


def test_rpc_malformed_numbers_become_chain_unavailable() -> None:
	reader = rpc_reader(results={"eth_getBlockByHash": {"timestamp": "0xnot-hex"}, "eth_call": "0xzz"})
	with pytest.raises(ChainUnavailable):
		reader.resolve_block_timestamp(BLOCK)
	with pytest.raises(ChainUnavailable):
		reader.read_token_balance(OWNER)


def test_rpc_balance_of() -> None:
	reader = rpc_reader(results={"eth_call": "0x" + format(300_000, "064x")})
	assert reader.read_token_balance(OWNER) == 300_000
	call = reader.session.requests[0]["body"]["params"][0]
	assert call["to"] == TOKEN_CONTRACT
	assert call["data"] == "0x70a08231" + OWNER.lower()[2:].rjust(64, "0")


@pytest.mark.django_db
def test_stub_reader_matches_simulated_chain() -> None:
	credit(OWNER, 1_000_000)
	tx = submit_transfer(OWNER, TREASURY, 150_000, age_seconds=30)
	reader = StubChainReader()

	resolved = reader.resolve_transaction(tx.tx_hash.upper().replace("0X", "0x"))
	assert resolved.sender == OWNER.lower()
	assert resolved.to == TOKEN_CONTRACT.lower()
	receipt = reader.resolve_receipt(tx.tx_hash)
	assert receipt.succeeded
	assert reader.resolve_block_timestamp(receipt.block_ref) == int(tx.block.timestamp.timestamp())
	assert reader.read_token_balance(OWNER) == 850_000
	assert reader.read_token_balance(TREASURY) == 150_000


@pytest.mark.django_db
def test_stub_reader_pending_and_reverted() -> None:
	pending = submit_transfer(OWNER, TREASURY, 1, status=ChainStubTxStatus.PENDING)
	reverted = submit_transfer(OWNER, TREASURY, 1, status=ChainStubTxStatus.REVERTED)
	reader = StubChainReader()

	assert reader.resolve_transaction(pending.tx_hash).block_ref is None
	assert reader.resolve_receipt(pending.tx_hash) is None
	assert reader.resolve_receipt(reverted.tx_hash).succeeded is False
	assert reader.read_token_balance(TREASURY) == 0
	assert reader.resolve_transaction("0xunknown") is None
	with pytest.raises(ChainUnavailable):
		reader.resolve_block_timestamp("0xnoblock")


def test_backend_selection(settings) -> None:
	settings.CHAIN_READER_BACKEND = "rpc"
	assert isinstance(get_chain_reader(), JsonRpcChainReader)
	settings.CHAIN_READER_BACKEND = "stub"
	assert isinstance(get_chain_reader(), StubChainReader)
	settings.CHAIN_READER_BACKEND = "carrier-pigeon"
	with pytest.raises(ValueError):
		get_chain_reader()


@pytest.mark.django_db
def test_malformed_node_reply_reaches_the_agent_as_upstream_unavailable() -> None:
	api_key = CredentialStore.create(OWNER).token
	gate = build_gate(rpc_reader(raw=[]))
	with pytest.raises(UpstreamUnavailable):
		gate.authorize(api_key=api_key, claimed_address=OWNER, tx_hash=TX)
	assert not PaymentLedger.was_consumed(TX)
