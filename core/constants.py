"""Unit conversion helpers shared across the gateway.


- TOKEN_DECIMALS controls the token granularity (MNEE uses 6, like USDC).
- token_to_units / units_to_token convert between human amounts and integer base units.
- All comparisons happen on integer units; Decimal is only for presentation.
"""

from django.conf import settings
from decimal import Decimal, ROUND_DOWN

TOKEN_DECIMALS = getattr(settings, "TOKEN_DECIMALS", 6)
TOKEN_SYMBOL = getattr(settings, "TOKEN_SYMBOL", "MNEE")
TEN_POW = 10 ** TOKEN_DECIMALS

# Credential tokens are self-identifying in logs: mnee_agent_<32 hex chars>
API_KEY_PREFIX = "mnee_agent_"
API_KEY_RANDOM_BYTES = 16


def token_to_units(amount: str | Decimal) -> int:
    """
    Convert a human-readable token string (e.g., "0.15") to integer base units using TOKEN_DECIMALS
    """
    amount = Decimal(str(amount))  # accept str or Decimal
    return int((amount * Decimal(TEN_POW)).quantize(Decimal("1"), rounding=ROUND_DOWN))


def units_to_token(amount_units: int) -> Decimal:
    """
    Convert integer base units back to an exact Decimal token amount.
    """
    return Decimal(int(amount_units)).scaleb(-TOKEN_DECIMALS)


def format_units(amount_units: int) -> str:
    """
    Human-readable decimal string without trailing zeros: 150000 -> "0.15"
    """
    text = f"{units_to_token(amount_units):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def generation_price_units() -> int:
    return token_to_units(getattr(settings, "GENERATION_PRICE", "0.15"))


def mask_token(token: str) -> str:
    """
    Log-safe form of an API key: prefix + last 4 chars
    """
    if not token:
        return "<none>"
    if token.startswith(API_KEY_PREFIX):
        return f"{API_KEY_PREFIX}...{token[-4:]}"
    return f"...{token[-4:]}"
