"""HTTP endpoints for the chain stub mirroring a token transfer / balance surface"""

import json
import logging
from django.http import JsonResponse, HttpResponseBadRequest, Http404
from django.views.decorators.csrf import csrf_exempt
from .models import ChainStubBalance, ChainStubTransaction, ChainStubTxStatus
from .simulator import submit_transfer, credit

logger = logging.getLogger(__name__)


def get_balance(request, address: str):
	"""
	GET: Return the simulated on-chain token balance for an address
	"""
	obj = ChainStubBalance.objects.filter(address=address.lower()).first()
	return JsonResponse({"address": address.lower(), "balance_units": str(obj.balance_units if obj else 0)})


def get_transaction(request, tx_hash: str):
	"""
	GET: Node-shaped view of a stub transaction
	"""
	tx = ChainStubTransaction.objects.select_related("block").filter(tx_hash__iexact=tx_hash).first()
	if tx is None:
		raise Http404("unknown transaction")
	return JsonResponse({
		"hash": tx.tx_hash,
		"from": tx.from_address,
		"to": tx.to_address,
		"input": tx.input_data,
		"status": tx.status,
		"blockHash": tx.block.block_hash if tx.block else None,
		"timestamp": tx.block.timestamp.isoformat() if tx.block else None,
	})


@csrf_exempt
def transfer(request):
	"""
	POST: Mine a token transfer; returns its hash for use as payment_tx_hash
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	if not isinstance(body, dict):
		return HttpResponseBadRequest("JSON object expected")

	from_address = body.get("from_address")
	to_address = body.get("to_address")
	if not from_address or not to_address or "amount_units" not in body:
		return HttpResponseBadRequest("from_address, to_address and amount_units required")

	status = body.get("status", ChainStubTxStatus.SUCCESS)
	if status not in ChainStubTxStatus.values:
		return HttpResponseBadRequest(f"status must be one of {ChainStubTxStatus.values}")

	try:
		tx = submit_transfer(
			from_address,
			to_address,
			int(body["amount_units"]),
			status=status,
			age_seconds=int(body.get("age_seconds", 0)),
		)
	except ValueError as e:
		return HttpResponseBadRequest(str(e))

	logger.info("stub transfer %s: %s -> %s (%s units, %s)", tx.tx_hash, from_address, to_address, body["amount_units"], status)
	return JsonResponse({"tx_hash": tx.tx_hash, "status": tx.status}, status=201)


@csrf_exempt
def faucet(request):
	"""
	POST: Credit an address out of thin air (demo convenience)
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = json.loads(request.body or b"{}")
		address = body["address"]
		amount_units = int(body["amount_units"])
	except (ValueError, KeyError, TypeError):
		return HttpResponseBadRequest("address and amount_units required")
	balance = credit(address, amount_units)
	return JsonResponse({"address": address.lower(), "balance_units": str(balance)}, status=201)
