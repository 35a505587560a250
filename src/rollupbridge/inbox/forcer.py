"""
Direct inbox access.

When the sequencer stalls, messages can still reach L2: a retryable ticket
can be created straight on the inbox, and delayed messages older than the
sequencer inbox's delay window can be forced into the L2 inbox by anyone.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..chain import ChainClient, Receipt, to_bytes, to_hex_str
from ..chain.contracts import Bridge, SequencerInbox
from ..errors import InsufficientFunds
from ..logging import LogContext, get_logger
from ..message import (
    GasOverrides,
    MessageStatusTracker,
    RetryableGasEstimator,
    RetryableRequest,
    RetryableTicket,
    create_retryable_ticket_calldata,
)

logger = get_logger(__name__)

# About three days of L1 blocks
DEFAULT_MAX_SEARCH_RANGE_BLOCKS = 3 * 6545


@dataclass(frozen=True)
class ForceInclusionEvent:
    """A delayed message that can be forced into the L2 inbox."""

    message_index: int
    before_inbox_acc: bytes
    kind: int
    sender: str
    message_data_hash: bytes
    base_fee_l1: int
    timestamp: int
    block_number: int
    tx_hash: str


class InboxForcer:
    """Submits messages on L1 without going through the sequencer."""

    def __init__(
        self,
        l1_client: ChainClient,
        tracker: MessageStatusTracker,
        gas_estimator: RetryableGasEstimator,
    ):
        self.l1_client = l1_client
        self.tracker = tracker
        self.gas_estimator = gas_estimator
        self.chain_pair = tracker.chain_pair

    def _context(self, operation: str, tx_hash: Optional[str] = None) -> LogContext:
        return LogContext(
            chain_id=self.chain_pair.source_chain_id,
            component="InboxForcer",
            operation=operation,
            tx_hash=tx_hash,
        )

    async def force_inclusion(
        self, request: RetryableRequest, overrides: Optional[GasOverrides] = None
    ) -> List[RetryableTicket]:
        """Create a retryable ticket directly on the inbox.

        The calldata is built exactly as for deposits, so the resulting
        tickets are tracked like any other.
        """
        estimate = await self.gas_estimator.estimate_all(request, overrides=overrides)
        sender = self.l1_client.address
        available = await self.l1_client.get_balance(sender)
        if available < estimate.deposit:
            raise InsufficientFunds(sender, estimate.deposit, available, asset="ETH")

        tx_hash = await self.l1_client.send_transaction(
            self.chain_pair.eth_bridge.inbox,
            create_retryable_ticket_calldata(request, estimate),
            value=estimate.deposit,
        )
        logger.info(
            "Submitted retryable directly to the inbox",
            context=self._context("force_inclusion", tx_hash),
        )
        receipt = await self.l1_client.wait_for_receipt(tx_hash)
        return self.tracker.get_messages(receipt)

    async def get_force_includable_event(
        self, max_search_range_blocks: int = DEFAULT_MAX_SEARCH_RANGE_BLOCKS
    ) -> Optional[ForceInclusionEvent]:
        """Newest delayed message past the delay window that was not read yet."""
        eth_bridge = self.chain_pair.eth_bridge
        delay_blocks = (
            await self.l1_client.call(eth_bridge.sequencer_inbox, SequencerInbox.MAX_TIME_VARIATION)
        )[0]
        latest = await self.l1_client.block_number()
        to_block = latest - delay_blocks
        if to_block < 0:
            return None
        from_block = max(0, to_block - max_search_range_blocks)

        logs = await self.l1_client.get_logs(
            eth_bridge.bridge, [Bridge.MESSAGE_DELIVERED.topic], from_block, to_block
        )
        if not logs:
            logger.debug(
                f"No delayed messages between blocks {from_block} and {to_block}",
                context=self._context("get_force_includable_event"),
            )
            return None

        newest = max(logs, key=lambda log: (log["blockNumber"], log.get("logIndex", 0)))
        event = Bridge.MESSAGE_DELIVERED.decode_log(newest)

        total_read = await self.l1_client.call(
            eth_bridge.sequencer_inbox, SequencerInbox.TOTAL_DELAYED_MESSAGES_READ
        )
        if total_read > event["messageIndex"]:
            return None

        return ForceInclusionEvent(
            message_index=event["messageIndex"],
            before_inbox_acc=to_bytes(event["beforeInboxAcc"]),
            kind=event["kind"],
            sender=event["sender"],
            message_data_hash=to_bytes(event["messageDataHash"]),
            base_fee_l1=event["baseFeeL1"],
            timestamp=event["timestamp"],
            block_number=newest["blockNumber"],
            tx_hash=to_hex_str(newest["transactionHash"]),
        )

    async def force_include(
        self, event: Optional[ForceInclusionEvent] = None
    ) -> Optional[Receipt]:
        """Force delayed messages up to ``event`` into the L2 inbox.

        Returns ``None`` when nothing is force-includable.
        """
        if event is None:
            event = await self.get_force_includable_event()
        if event is None:
            return None

        receipt = await self.l1_client.transact(
            self.chain_pair.eth_bridge.sequencer_inbox,
            SequencerInbox.FORCE_INCLUSION,
            event.message_index + 1,
            event.kind,
            [event.block_number, event.timestamp],
            event.base_fee_l1,
            event.sender,
            event.message_data_hash,
        )
        logger.info(
            f"Forced inclusion of delayed messages up to {event.message_index}",
            context=self._context("force_include", to_hex_str(receipt["transactionHash"])),
        )
        return receipt
