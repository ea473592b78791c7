"""API key management: create, list (per wallet), revoke."""

import json
import logging
from django.core.exceptions import ValidationError
from django.http import JsonResponse, HttpResponseBadRequest, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt
from core.credentials import CredentialStore
from core.errors import GatewayError, StoreError

logger = logging.getLogger(__name__)


@csrf_exempt
def keys(request):
	if request.method == "GET":
		return list_keys(request)
	if request.method == "POST":
		return create_key(request)
	if request.method == "DELETE":
		return revoke_key(request)
	return HttpResponseNotAllowed(["GET", "POST", "DELETE"])


def list_keys(request):
	"""
	GET ?wallet_address=...: this wallet's keys, newest first, tokens masked
	"""
	wallet_address = request.GET.get("wallet_address")
	if not wallet_address:
		return HttpResponseBadRequest("wallet_address query parameter required")
	try:
		rows = CredentialStore.list_by_owner(wallet_address)
	except StoreError:
		logger.exception("listing keys failed")
		return JsonResponse({"success": False, "error": "Internal server error"}, status=500)
	return JsonResponse({"success": True, "keys": [CredentialStore.summarize(c) for c in rows]})


def create_key(request):
	"""
	POST {wallet_address, name?}: the only response that ever carries the full key
	"""
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	if not isinstance(body, dict):
		return HttpResponseBadRequest("JSON object expected")

	wallet_address = body.get("wallet_address")
	if not wallet_address:
		return HttpResponseBadRequest("wallet_address required")

	try:
		cred = CredentialStore.create(wallet_address, body.get("name"))
	except ValidationError as e:
		return JsonResponse({"success": False, "error": e.message}, status=400)
	except StoreError:
		return JsonResponse({"success": False, "error": "Internal server error"}, status=500)

	return JsonResponse({"success": True, "api_key": cred.token, "id": str(cred.id)}, status=201)


def revoke_key(request):
	"""
	DELETE {api_key, wallet_address}: owner-only, idempotent
	"""
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	if not isinstance(body, dict):
		return HttpResponseBadRequest("JSON object expected")

	# The full key is the proof of ownership; masked listings cannot be used to revoke
	wallet_address = body.get("wallet_address")
	api_key = body.get("api_key")
	if not api_key or not wallet_address:
		return HttpResponseBadRequest("api_key and wallet_address required")

	try:
		CredentialStore.revoke(api_key, wallet_address)
	except StoreError:
		return JsonResponse({"success": False, "error": "Internal server error"}, status=500)
	except GatewayError as e:
		return JsonResponse({"success": False, "error": e.reason}, status=e.http_status)

	return JsonResponse({"success": True, "message": "API key revoked successfully"})
