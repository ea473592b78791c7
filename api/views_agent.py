"""Agent-facing endpoints: pay-per-call authorization and outcome reporting.

Agents present `Authorization: Bearer mnee_agent_...` plus the hash of a fresh
MNEE transfer to the treasury. A successful authorize spends that transfer; the
agent (or the service running the paid action for it) then reports the outcome.
"""

import json
import logging
from django.http import JsonResponse, HttpResponseBadRequest
from django.views.decorators.csrf import csrf_exempt
from core.credentials import CredentialStore
from core.errors import GatewayError, StoreError, Unauthorized, HTTP_STATUS_BY_CODE
from core.ledger import PaymentLedger
from core.services import build_gate, authorize_request

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def _bearer_token(request) -> str | None:
	header = request.headers.get("Authorization") or ""
	if not header.startswith(BEARER_PREFIX):
		return None
	return header[len(BEARER_PREFIX):].strip() or None


def _error(e: GatewayError) -> JsonResponse:
	if isinstance(e, StoreError):
		# Don't leak storage details
		return JsonResponse({"authorized": False, "reason": "Internal server error"}, status=500)
	return JsonResponse({"authorized": False, "reason": e.reason, "error_code": e.code}, status=e.http_status)


def _authenticated_credential(request):
	token = _bearer_token(request)
	if token is None:
		raise Unauthorized("Missing or invalid Authorization header")
	CredentialStore.validate(token)
	return CredentialStore.get(token)


@csrf_exempt
def authorize(request):
	"""
	POST {wallet_address, payment_tx_hash, action_params?}: spend one payment, get one grant
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")

	token = _bearer_token(request)
	if token is None:
		return _error(Unauthorized("Missing or invalid Authorization header"))

	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	if not isinstance(body, dict):
		return HttpResponseBadRequest("JSON object expected")

	wallet_address = body.get("wallet_address")
	tx_hash = body.get("payment_tx_hash")
	action_params = body.get("action_params") or {}
	if not wallet_address or not tx_hash:
		return HttpResponseBadRequest("Missing required fields: payment_tx_hash, wallet_address")
	if not isinstance(action_params, dict):
		return HttpResponseBadRequest("action_params must be an object")

	try:
		result = authorize_request(
			build_gate(),
			api_key=token,
			wallet_address=wallet_address,
			tx_hash=tx_hash,
			action_params=action_params,
		)
	except StoreError as e:
		logger.exception("authorization aborted by a store failure")
		return _error(e)

	if not result["authorized"]:
		return JsonResponse(result, status=HTTP_STATUS_BY_CODE.get(result["error_code"], 400))
	return JsonResponse(result)


@csrf_exempt
def payment_outcome(request, tx_hash: str):
	"""
	POST {status: "completed"|"failed", error?}: resolve the paid action for a spent payment
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	if not isinstance(body, dict):
		return HttpResponseBadRequest("JSON object expected")

	status = body.get("status")
	if status not in ("completed", "failed"):
		return HttpResponseBadRequest("status must be 'completed' or 'failed'")

	try:
		cred = _authenticated_credential(request)
		record = PaymentLedger.get(tx_hash)
		if record is None or record.credential_id != cred.id:
			return JsonResponse({"success": False, "error": "unknown payment"}, status=404)

		if status == "completed":
			changed = PaymentLedger.mark_action_completed(tx_hash)
		else:
			changed = PaymentLedger.mark_action_failed(tx_hash, str(body.get("error") or ""))
	except GatewayError as e:
		return _error(e)

	if not changed:
		return JsonResponse({"success": False, "error": "outcome already recorded"}, status=409)
	return JsonResponse({"success": True, "tx_hash": record.tx_hash, "action_status": status.upper()})


def payments(request):
	"""
	GET: the calling key's payment history, newest first
	"""
	try:
		cred = _authenticated_credential(request)
		rows = PaymentLedger.history_for_credential(cred)
	except GatewayError as e:
		return _error(e)
	return JsonResponse({"success": True, "payments": [PaymentLedger.summarize(r) for r in rows]})
