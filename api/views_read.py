"""Read-only endpoints: health, pricing terms, display balances."""

import logging
from django.conf import settings
from django.http import JsonResponse
from core.adapters.chain_adapter import get_chain_reader
from core.constants import format_units, generation_price_units, TOKEN_DECIMALS, TOKEN_SYMBOL
from core.errors import ChainUnavailable

logger = logging.getLogger(__name__)


def health(request):
	return JsonResponse({"ok": True})


def pricing(request):
	"""
	GET: What one paid call costs and where to send it
	"""
	price_units = generation_price_units()
	return JsonResponse({
		"price": format_units(price_units),
		"price_units": str(price_units),
		"symbol": TOKEN_SYMBOL,
		"token_decimals": TOKEN_DECIMALS,
		"token_contract": settings.MNEE_CONTRACT_ADDRESS,
		"treasury_address": settings.TREASURY_ADDRESS,
		"max_payment_age_seconds": settings.PAYMENT_MAX_AGE_SECONDS,
	})


def balance(request, address: str):
	"""
	GET: Token balance of an address (display only; never used for authorization)
	"""
	try:
		units = get_chain_reader().read_token_balance(address)
	except ChainUnavailable:
		return JsonResponse({"error": "chain unavailable"}, status=503)
	return JsonResponse({
		"address": address.lower(),
		"balance": format_units(units),
		"balance_units": str(units),
		"symbol": TOKEN_SYMBOL,
		"sufficient_for_call": units >= generation_price_units(),
	})
