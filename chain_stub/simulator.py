"""Write side of the chain stub: mine a block holding one token transfer.

The resulting rows look like what a node would return for a real
transfer(address,uint256) call, so StubChainReader and the verifier run the
same code path as against a live chain.
"""

from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.calldata import encode_transfer_calldata
from .models import ChainStubBalance, ChainStubBlock, ChainStubTransaction, ChainStubTxStatus


@transaction.atomic
def submit_transfer(
	from_address: str,
	to_address: str,
	amount_units: int,
	*,
	status: str = ChainStubTxStatus.SUCCESS,
	age_seconds: int = 0,
	token_contract: str | None = None,
	input_data: str | None = None,
) -> ChainStubTransaction:
	"""
	Record a transfer call and, unless it is pending, the block that includes it.

	Balances move only for successful transfers (reverted calls leave state untouched).
	"""
	block = None
	if status != ChainStubTxStatus.PENDING:
		block = ChainStubBlock.objects.create(timestamp=timezone.now() - timedelta(seconds=age_seconds))

	tx = ChainStubTransaction.objects.create(
		from_address=from_address.lower(),
		to_address=(token_contract or settings.MNEE_CONTRACT_ADDRESS).lower(),
		input_data=input_data if input_data is not None else encode_transfer_calldata(to_address, int(amount_units)),
		status=status,
		block=block,
	)

	if status == ChainStubTxStatus.SUCCESS and input_data is None:
		_move_balance(from_address, -int(amount_units))
		_move_balance(to_address, int(amount_units))
	return tx


def credit(address: str, amount_units: int) -> int:
	"""
	Faucet: top up an address without a transfer
	"""
	return _move_balance(address, int(amount_units))


def _move_balance(address: str, delta: int) -> int:
	bal, _ = ChainStubBalance.objects.select_for_update().get_or_create(address=address.lower(), defaults={"balance_units": 0})
	bal.balance_units += delta
	bal.save(update_fields=["balance_units"])
	return bal.balance_units
