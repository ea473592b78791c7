"""Hand-rolled decoder for ERC-20 transfer(address,uint256) calldata.

Layout of tx.input (hex, after the optional 0x):

    [0:4)    selector   a9059cbb
    [4:36)   recipient  32-byte slot, address right-aligned in the last 20 bytes
    [36:68)  amount     32-byte slot, big-endian uint256

Offsets below are in bytes; the hex string uses twice as many characters.
Anything after byte 68 is ignored.
"""

import re

TRANSFER_SELECTOR = "a9059cbb"
SELECTOR_BYTES = 4
SLOT_BYTES = 32
ADDRESS_BYTES = 20

RECIPIENT_OFFSET = SELECTOR_BYTES
AMOUNT_OFFSET = SELECTOR_BYTES + SLOT_BYTES
MIN_TRANSFER_BYTES = SELECTOR_BYTES + 2 * SLOT_BYTES  # 68 bytes = 136 hex chars

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


class MalformedCalldata(ValueError):
	pass


def _strip_0x(data: str) -> str:
	if data[:2] in ("0x", "0X"):
		return data[2:]
	return data


def _hex_slice(body: str, offset: int, length: int) -> str:
	return body[offset * 2:(offset + length) * 2]


def decode_transfer_calldata(data) -> tuple[str, int]:
	"""
	Return (recipient, amount_units) with the recipient lower-cased and 0x-prefixed.

	Raises MalformedCalldata for anything that is not a transfer call.
	"""
	if not isinstance(data, str):
		raise MalformedCalldata("calldata must be a hex string")
	body = _strip_0x(data.strip())
	if not _HEX_RE.match(body) or len(body) % 2:
		raise MalformedCalldata("calldata is not valid hex")
	if len(body) < MIN_TRANSFER_BYTES * 2:
		raise MalformedCalldata(f"calldata too short ({len(body) // 2} < {MIN_TRANSFER_BYTES} bytes)")

	selector = _hex_slice(body, 0, SELECTOR_BYTES).lower()
	if selector != TRANSFER_SELECTOR:
		raise MalformedCalldata(f"unexpected selector 0x{selector}")

	recipient_slot = _hex_slice(body, RECIPIENT_OFFSET, SLOT_BYTES)
	padding = recipient_slot[:(SLOT_BYTES - ADDRESS_BYTES) * 2]
	if int(padding, 16) != 0:
		raise MalformedCalldata("recipient slot has non-zero padding")
	recipient = "0x" + recipient_slot[(SLOT_BYTES - ADDRESS_BYTES) * 2:].lower()

	amount = int(_hex_slice(body, AMOUNT_OFFSET, SLOT_BYTES), 16)
	return recipient, amount


def encode_transfer_calldata(recipient: str, amount_units: int) -> str:
	"""
	Inverse of decode_transfer_calldata; used by the chain stub to build realistic txs.
	"""
	address = _strip_0x(recipient).lower()
	if len(address) != ADDRESS_BYTES * 2 or not _HEX_RE.match(address):
		raise ValueError(f"not a 20-byte hex address: {recipient}")
	if amount_units < 0 or amount_units >= 1 << (SLOT_BYTES * 8):
		raise ValueError("amount out of uint256 range")
	return "0x" + TRANSFER_SELECTOR + address.rjust(SLOT_BYTES * 2, "0") + format(amount_units, "064x")
