from typing import Union

from hexbytes import HexBytes
from scalecodec.utils.ss58 import ss58_encode

from .config import ss58_format_for


def to_canonical_account_id(address: Union[str, bytes]) -> bytes:
    """
    Map a 20-byte EVM address into the chain's 32-byte account space by
    left-padding it with 12 zero bytes.
    """
    raw = bytes(HexBytes(address))
    assert len(raw) == 20, f"expected a 20-byte address, got {len(raw)} bytes"
    return b"\x00" * 12 + raw


def h160_to_h256(address: Union[str, bytes]) -> str:
    return "0x" + to_canonical_account_id(address).hex()


def to_network_text(account_id: bytes, is_testnet: bool) -> str:
    """SS58 text form of a 32-byte account id (prefix 71 mainnet, 72 testnet).

    A wrong network does not fail, it silently names a different account.
    """
    assert len(account_id) == 32
    return ss58_encode(account_id, ss58_format=ss58_format_for(is_testnet))
