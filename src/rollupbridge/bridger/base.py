"""
Common plumbing for the asset bridgers.

An asset bridger is bound to one L1/L2 client pair and the registry entry
describing it. It owns the status tracker and the gas estimator its deposits
use.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..chain import ChainClient, Receipt
from ..chain.contracts import ERC20
from ..config import PollingConfig
from ..errors import InsufficientFunds, NetworkMismatch
from ..inbox import InboxForcer
from ..logging import LogContext, get_logger
from ..message import (
    MessageStatusTracker,
    RetryableGasEstimator,
    RetryableTicket,
    SubmittedMessage,
    WithdrawalRecord,
)
from ..networks import ChainPair, ChainRegistry

logger = get_logger(__name__)


@dataclass
class BridgeTransactionPair:
    """A source-chain transaction and what it produced on the other side.

    Deposits carry the discovered message and its tickets; withdrawals
    carry the withdrawal records to be claimed on L1.
    """

    source_receipt: Receipt
    dest_message: Optional[SubmittedMessage] = None
    tickets: List[RetryableTicket] = field(default_factory=list)
    withdrawals: List[WithdrawalRecord] = field(default_factory=list)

    @property
    def ticket(self) -> RetryableTicket:
        if not self.tickets:
            raise ValueError("Transaction produced no retryable ticket")
        return self.tickets[0]

    @property
    def withdrawal(self) -> WithdrawalRecord:
        if not self.withdrawals:
            raise ValueError("Transaction produced no withdrawal")
        return self.withdrawals[0]


class AssetBridger:
    """Base class of the ETH and token bridgers."""

    def __init__(
        self,
        l1_client: ChainClient,
        l2_client: ChainClient,
        chain_pair: ChainPair,
        polling: Optional[PollingConfig] = None,
    ):
        if l1_client.chain_id != chain_pair.source_chain_id:
            raise NetworkMismatch(
                f"L1 client is on chain {l1_client.chain_id}, "
                f"expected {chain_pair.source_chain_id}",
                chain_id=l1_client.chain_id,
            )
        if l2_client.chain_id != chain_pair.dest_chain_id:
            raise NetworkMismatch(
                f"L2 client is on chain {l2_client.chain_id}, "
                f"expected {chain_pair.dest_chain_id}",
                chain_id=l2_client.chain_id,
            )
        self.l1_client = l1_client
        self.l2_client = l2_client
        self.chain_pair = chain_pair
        self.polling = polling or PollingConfig()
        self.tracker = MessageStatusTracker(l2_client, chain_pair, self.polling)
        self.gas_estimator = RetryableGasEstimator(l1_client, l2_client, chain_pair)

    @property
    def inbox_forcer(self) -> InboxForcer:
        return InboxForcer(self.l1_client, self.tracker, self.gas_estimator)

    @classmethod
    def from_registry(
        cls,
        registry: ChainRegistry,
        l1_client: ChainClient,
        l2_client: ChainClient,
        polling: Optional[PollingConfig] = None,
    ):
        """Build a bridger for the pair the two clients are connected to."""
        pair = registry.lookup_pair(l1_client.chain_id, l2_client.chain_id)
        return cls(l1_client, l2_client, pair, polling)

    def _log_context(
        self, operation: str, chain_id: Optional[int] = None, tx_hash: Optional[str] = None
    ) -> LogContext:
        return LogContext(
            chain_id=self.chain_pair.source_chain_id if chain_id is None else chain_id,
            component=type(self).__name__,
            operation=operation,
            tx_hash=tx_hash,
        )

    async def _require_eth(self, client: ChainClient, required: int) -> None:
        available = await client.get_balance(client.address)
        if available < required:
            raise InsufficientFunds(client.address, required, available, asset="ETH")

    async def _require_token(
        self, client: ChainClient, token: str, required: int
    ) -> None:
        available = await client.call(token, ERC20.BALANCE_OF, client.address)
        if available < required:
            raise InsufficientFunds(client.address, required, available, asset=token)

    def _deposit_result(self, receipt: Receipt) -> BridgeTransactionPair:
        tickets = self.tracker.get_messages(receipt)
        return BridgeTransactionPair(
            source_receipt=receipt,
            dest_message=tickets[0].message,
            tickets=tickets,
        )

    def _withdrawal_result(self, receipt: Receipt) -> BridgeTransactionPair:
        return BridgeTransactionPair(
            source_receipt=receipt,
            withdrawals=WithdrawalRecord.from_receipt(receipt),
        )
