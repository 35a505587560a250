"""L2 to L1 withdrawal records."""

from dataclasses import dataclass
from typing import List

from ..chain import Receipt, to_hex_str
from ..chain.contracts import ARB_SYS_ADDRESS, ArbSys
from ..errors import NoMessageFound


@dataclass(frozen=True)
class WithdrawalRecord:
    """An ``L2ToL1Tx`` event.

    The message becomes claimable on L1 once the L2 state containing it is
    confirmed; claiming is left to the caller.
    """

    caller: str
    destination: str
    hash: int
    position: int
    arb_block_num: int
    eth_block_num: int
    timestamp: int
    callvalue: int
    data: bytes
    l2_tx_hash: str

    @classmethod
    def from_receipt(cls, receipt: Receipt) -> List["WithdrawalRecord"]:
        tx_hash = to_hex_str(receipt["transactionHash"])
        events = ArbSys.L2_TO_L1_TX.filter_logs(receipt.get("logs", []), ARB_SYS_ADDRESS)
        if not events:
            raise NoMessageFound(tx_hash)
        return [
            cls(
                caller=event["caller"],
                destination=event["destination"],
                hash=event["hash"],
                position=event["position"],
                arb_block_num=event["arbBlockNum"],
                eth_block_num=event["ethBlockNum"],
                timestamp=event["timestamp"],
                callvalue=event["callvalue"],
                data=bytes(event["data"]),
                l2_tx_hash=tx_hash,
            )
            for event in events
        ]
