"""Ledger access: ABI codec, contract signatures and the async RPC client."""

from .abi import (
    ZERO_ADDRESS,
    ContractEvent,
    ContractFunction,
    EventParam,
    checksum,
    is_zero_address,
    same_address,
    to_bytes,
    to_hex_str,
)
from .client import ChainClient, Receipt

__all__ = [
    "ZERO_ADDRESS",
    "ContractEvent",
    "ContractFunction",
    "EventParam",
    "checksum",
    "is_zero_address",
    "same_address",
    "to_bytes",
    "to_hex_str",
    "ChainClient",
    "Receipt",
]
