import json

import pytest
from django.db import DatabaseError
from django.db.models.query import QuerySet

from chain_stub.models import ChainStubTxStatus
from chain_stub.simulator import submit_transfer, credit
from core.credentials import CredentialStore
from core.models import PaymentRecord

from .fakes import OWNER, OTHER, TREASURY, PRICE_UNITS

pytestmark = pytest.mark.django_db


def post_json(client, path, body, **headers):
	return client.post(path, data=json.dumps(body), content_type="application/json", **headers)


def bearer(token):
	return {"HTTP_AUTHORIZATION": f"Bearer {token}"}


@pytest.fixture
def api_key(client):
	r = post_json(client, "/api/keys", {"wallet_address": OWNER, "name": "bot"})
	assert r.status_code == 201
	return r.json()["api_key"]


def pay(amount=PRICE_UNITS, sender=OWNER, **kwargs):
	credit(sender, amount)
	return submit_transfer(sender, TREASURY, amount, **kwargs).tx_hash


def test_health_and_pricing(client) -> None:
	assert client.get("/api/health").json() == {"ok": True}
	data = client.get("/api/pricing").json()
	assert data["price"] == "0.15"
	assert data["price_units"] == str(PRICE_UNITS)
	assert data["treasury_address"] == TREASURY
	assert data["max_payment_age_seconds"] == 300


def test_key_lifecycle(client, api_key) -> None:
	listing = client.get("/api/keys", {"wallet_address": OWNER.lower()}).json()
	assert len(listing["keys"]) == 1
	assert listing["keys"][0]["api_key"].endswith(api_key[-4:])
	assert api_key not in json.dumps(listing)
	assert client.get("/api/keys", {"wallet_address": OTHER}).json()["keys"] == []

	r = client.delete("/api/keys", data=json.dumps({"api_key": api_key, "wallet_address": OTHER}), content_type="application/json")
	assert r.status_code == 403

	r = client.delete("/api/keys", data=json.dumps({"api_key": api_key, "wallet_address": OWNER}), content_type="application/json")
	assert r.status_code == 200
	assert client.get("/api/keys", {"wallet_address": OWNER}).json()["keys"][0]["is_active"] is False


def test_revoke_needs_the_full_key(client, api_key) -> None:
	# Anyone can list a wallet's keys, so nothing in a listing may be enough to revoke one
	listed = client.get("/api/keys", {"wallet_address": OWNER}).json()["keys"][0]

	body = json.dumps({"key_id": listed["id"], "wallet_address": OWNER})
	assert client.delete("/api/keys", data=body, content_type="application/json").status_code == 400

	body = json.dumps({"api_key": listed["api_key"], "wallet_address": OWNER})
	assert client.delete("/api/keys", data=body, content_type="application/json").status_code == 401

	assert CredentialStore.validate(api_key) == OWNER.lower()


def test_key_endpoints_validate_input(client) -> None:
	assert client.get("/api/keys").status_code == 400
	assert post_json(client, "/api/keys", {}).status_code == 400
	assert client.put("/api/keys").status_code == 405


def test_authorize_over_stub_chain(client, api_key) -> None:
	tx_hash = pay()
	body = {"wallet_address": OWNER, "payment_tx_hash": tx_hash, "action_params": {"prompt": "a lighthouse"}}

	r = post_json(client, "/api/agent/authorize", body, **bearer(api_key))
	assert r.status_code == 200
	data = r.json()
	assert data["authorized"] is True
	assert data["payer"] == OWNER.lower()
	assert data["amount"] == "0.15"
	assert PaymentRecord.objects.get(tx_hash=tx_hash.lower()).action_params == {"prompt": "a lighthouse"}

	again = post_json(client, "/api/agent/authorize", body, **bearer(api_key))
	assert again.status_code == 409
	assert again.json() == {"authorized": False, "reason": "payment already used", "error_code": "already_consumed"}


@pytest.mark.parametrize("tx_kwargs, reason", [
	({"amount": PRICE_UNITS - 1}, "insufficient amount"),
	({"age_seconds": 301}, "payment too old"),
	({"status": ChainStubTxStatus.REVERTED}, "transaction failed or unconfirmed"),
	({"status": ChainStubTxStatus.PENDING}, "transaction failed or unconfirmed"),
])
def test_authorize_rejections_are_402(client, api_key, tx_kwargs, reason) -> None:
	tx_hash = pay(**tx_kwargs)
	r = post_json(client, "/api/agent/authorize", {"wallet_address": OWNER, "payment_tx_hash": tx_hash}, **bearer(api_key))
	assert r.status_code == 402
	assert r.json()["reason"].startswith(reason)


def test_authorize_auth_and_identity_errors(client, api_key) -> None:
	tx_hash = pay(sender=OTHER)
	body = {"wallet_address": OWNER, "payment_tx_hash": tx_hash}

	assert post_json(client, "/api/agent/authorize", body).status_code == 401
	assert post_json(client, "/api/agent/authorize", body, HTTP_AUTHORIZATION=api_key).status_code == 401
	assert post_json(client, "/api/agent/authorize", body, **bearer("mnee_agent_bogus")).status_code == 401

	r = post_json(client, "/api/agent/authorize", {**body, "wallet_address": OTHER}, **bearer(api_key))
	assert r.status_code == 403
	assert r.json()["reason"] == "claimed identity does not own this credential"

	r = post_json(client, "/api/agent/authorize", body, **bearer(api_key))
	assert r.status_code == 403
	assert r.json()["reason"] == "payment not sent from claimed identity"


def test_authorize_requires_fields(client, api_key) -> None:
	r = post_json(client, "/api/agent/authorize", {"wallet_address": OWNER}, **bearer(api_key))
	assert r.status_code == 400
	r = client.post("/api/agent/authorize", data="{nope", content_type="application/json", **bearer(api_key))
	assert r.status_code == 400


@pytest.mark.parametrize("method, path", [
	("post", "/api/agent/authorize"),
	("post", "/api/agent/payments/0xabc/outcome"),
	("post", "/api/keys"),
	("delete", "/api/keys"),
	("post", "/stub/chain/transfer"),
	("post", "/stub/chain/faucet"),
])
def test_non_object_json_is_rejected(client, api_key, method, path) -> None:
	r = getattr(client, method)(path, data="[]", content_type="application/json", **bearer(api_key))
	assert r.status_code == 400


def test_store_failure_is_a_generic_500(client, api_key, monkeypatch) -> None:
	tx_hash = pay()

	def broken_create(self, **kwargs):
		raise DatabaseError("disk full")

	monkeypatch.setattr(QuerySet, "create", broken_create)
	r = post_json(client, "/api/agent/authorize", {"wallet_address": OWNER, "payment_tx_hash": tx_hash}, **bearer(api_key))
	monkeypatch.undo()

	assert r.status_code == 500
	assert r.json() == {"authorized": False, "reason": "Internal server error"}
	assert not PaymentRecord.objects.filter(tx_hash=tx_hash.lower()).exists()


def test_outcome_reporting_and_history(client, api_key) -> None:
	ok_tx = pay()
	bad_tx = pay()
	for tx in (ok_tx, bad_tx):
		post_json(client, "/api/agent/authorize", {"wallet_address": OWNER, "payment_tx_hash": tx}, **bearer(api_key))

	r = post_json(client, f"/api/agent/payments/{ok_tx}/outcome", {"status": "completed"}, **bearer(api_key))
	assert r.status_code == 200
	r = post_json(client, f"/api/agent/payments/{bad_tx}/outcome", {"status": "failed", "error": "generator 500"}, **bearer(api_key))
	assert r.json()["action_status"] == "FAILED"
	r = post_json(client, f"/api/agent/payments/{ok_tx}/outcome", {"status": "failed"}, **bearer(api_key))
	assert r.status_code == 409

	other_key = CredentialStore.create(OWNER).token
	r = post_json(client, f"/api/agent/payments/{ok_tx}/outcome", {"status": "completed"}, **bearer(other_key))
	assert r.status_code == 404

	history = client.get("/api/agent/payments", **bearer(api_key)).json()["payments"]
	assert {p["tx_hash"] for p in history} == {ok_tx.lower(), bad_tx.lower()}
	assert {p["action_status"] for p in history} == {"COMPLETED", "FAILED"}
	assert client.get("/api/agent/payments").status_code == 401


def test_balance_is_display_only(client) -> None:
	credit(OWNER, PRICE_UNITS * 2)
	data = client.get(f"/api/balance/{OWNER}").json()
	assert data["balance"] == "0.3"
	assert data["sufficient_for_call"] is True
	assert client.get(f"/api/balance/{OTHER}").json()["balance_units"] == "0"


def test_chain_stub_transfer_endpoint(client) -> None:
	r = post_json(client, "/stub/chain/transfer", {"from_address": OWNER, "to_address": TREASURY, "amount_units": PRICE_UNITS})
	assert r.status_code == 201
	tx_hash = r.json()["tx_hash"]

	tx = client.get(f"/stub/chain/tx/{tx_hash}").json()
	assert tx["from"] == OWNER.lower()
	assert tx["input"].startswith("0xa9059cbb")
	assert client.get(f"/stub/chain/balance/{TREASURY}").json()["balance_units"] == str(PRICE_UNITS)

	assert post_json(client, "/stub/chain/transfer", {"from_address": OWNER}).status_code == 400
	assert client.get("/stub/chain/tx/0xdoesnotexist").status_code == 404
