"""
Message status tracking.

Discovers the retryable tickets created by an L1 transaction and reads their
lifecycle state from L2. Every read is side-effect free on chain, so status
checks and waits can be repeated at any point, including while a message is
still in flight between the two ledgers.
"""

import time
from typing import Dict, List, Optional, Set

from ..chain import ChainClient, Receipt, to_hex_str
from ..chain.contracts import ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx, Bridge, Inbox
from ..config import PollingConfig
from ..errors import (
    AlreadyRedeemed,
    CancelToken,
    Expired,
    MessageNotReady,
    MessageTimeout,
    NoMessageFound,
    TransientChainError,
    cancellable_sleep,
)
from ..logging import LogContext, get_logger
from ..networks import ChainPair
from .retryable import (
    L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX,
    RetryableTicket,
    parse_submit_retryable_data,
)
from .types import MessageStatus, StatusResult, SubmittedMessage

logger = get_logger(__name__)

ONE_DAY_SECONDS = 24 * 60 * 60

DEFAULT_TARGET_STATUSES = frozenset(
    status for status in MessageStatus if status is not MessageStatus.NOT_YET_CREATED
)


def _settled_error(ticket_id: str, status: MessageStatus):
    if status is MessageStatus.REDEEMED:
        return AlreadyRedeemed(ticket_id)
    if status is MessageStatus.EXPIRED:
        return Expired(ticket_id)
    return MessageNotReady(
        f"Retryable ticket {ticket_id} is {status.name} and will not change",
        ticket_id=ticket_id,
    )


class MessageStatusTracker:
    """Finds retryable messages in L1 receipts and follows them on L2."""

    def __init__(
        self,
        l2_client: ChainClient,
        chain_pair: ChainPair,
        polling: Optional[PollingConfig] = None,
    ):
        self.l2_client = l2_client
        self.chain_pair = chain_pair
        self.polling = polling or PollingConfig()

    def get_messages(self, source_receipt: Receipt) -> List[RetryableTicket]:
        """Retryable tickets created by a mined L1 transaction.

        Raises ``NoMessageFound`` when the receipt delivered no
        ``submitRetryableTx`` message.
        """
        tx_hash = to_hex_str(source_receipt["transactionHash"])
        logs = source_receipt.get("logs", [])

        delivered = Bridge.MESSAGE_DELIVERED.filter_logs(logs, self.chain_pair.eth_bridge.bridge)
        inbox_data: Dict[int, bytes] = {
            event["messageNum"]: event["data"]
            for event in Inbox.INBOX_MESSAGE_DELIVERED.filter_logs(logs)
        }

        tickets = []
        for event in delivered:
            if event["kind"] != L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX:
                continue
            index = event["messageIndex"]
            if index not in inbox_data:
                raise NoMessageFound(
                    tx_hash, metadata={"reason": f"no inbox data for message {index}"}
                )
            message = SubmittedMessage(
                source_tx_hash=tx_hash,
                source_block_hash=to_hex_str(source_receipt["blockHash"]),
                message_number=index,
                sender=event["sender"],
                dest_chain_id=self.chain_pair.dest_chain_id,
            )
            params = parse_submit_retryable_data(inbox_data[index])
            tickets.append(
                RetryableTicket(self.l2_client, self, message, params, event["baseFeeL1"])
            )

        if not tickets:
            raise NoMessageFound(tx_hash)

        for ticket in tickets:
            logger.info(
                f"Discovered retryable message {ticket.message.message_number}",
                context=LogContext(
                    chain_id=self.chain_pair.source_chain_id,
                    operation="get_messages",
                    tx_hash=tx_hash,
                    ticket_id=ticket.ticket_id,
                ),
            )
        return tickets

    async def get_status_result(self, ticket: RetryableTicket) -> StatusResult:
        """Read the current status of ``ticket`` from L2."""
        result = await self._read_status(ticket)
        redeem_hash = (
            to_hex_str(result.l2_tx_receipt["transactionHash"])
            if result.l2_tx_receipt is not None
            else None
        )
        previous = ticket.record.status
        if ticket.record.transition(result.status, redeem_tx_hash=redeem_hash):
            logger.info(
                f"Ticket status {previous.name} -> {result.status.name}",
                context=LogContext(
                    chain_id=self.chain_pair.dest_chain_id,
                    operation="status",
                    ticket_id=ticket.ticket_id,
                    tx_hash=redeem_hash,
                ),
            )
        return result

    async def status(self, ticket: RetryableTicket) -> MessageStatus:
        return (await self.get_status_result(ticket)).status

    async def _read_status(self, ticket: RetryableTicket) -> StatusResult:
        creation = await ticket.get_creation_receipt()
        if creation is None:
            return StatusResult(MessageStatus.NOT_YET_CREATED)
        if creation["status"] == 0:
            return StatusResult(MessageStatus.CREATION_FAILED)

        auto_redeem = await ticket.get_auto_redeem_attempt()
        if auto_redeem is not None and auto_redeem["status"] == 1:
            return StatusResult(MessageStatus.REDEEMED, auto_redeem)

        if await ticket.exists():
            return StatusResult(MessageStatus.FUNDS_DEPOSITED_ON_L2)

        manual = await self._find_successful_redeem(ticket, creation)
        if manual is not None:
            return StatusResult(MessageStatus.REDEEMED, manual)
        return StatusResult(MessageStatus.EXPIRED)

    async def _find_successful_redeem(
        self, ticket: RetryableTicket, creation: Receipt
    ) -> Optional[Receipt]:
        """Scan ``RedeemScheduled`` logs from creation until the ticket timed out.

        The scan window adapts so that each request covers roughly one day
        of L2 blocks.
        """
        ticket_topic = ticket.ticket_id
        creation_block = await self.l2_client.get_block(creation["blockNumber"])
        timeout = creation_block["timestamp"] + self.chain_pair.retryable_lifetime_seconds
        latest = await self.l2_client.block_number()

        increment = self.polling.redeem_search_block_range
        from_block = creation_block
        while from_block["number"] <= latest:
            to_number = min(from_block["number"] + increment, latest)
            logs = await self.l2_client.get_logs(
                ARB_RETRYABLE_TX_ADDRESS,
                [ArbRetryableTx.REDEEM_SCHEDULED.topic, ticket_topic],
                from_block["number"],
                to_number,
            )
            for event in ArbRetryableTx.REDEEM_SCHEDULED.filter_logs(logs):
                receipt = await self.l2_client.get_receipt(event["retryTxHash"])
                if receipt is not None and receipt["status"] == 1:
                    return receipt

            to_block = await self.l2_client.get_block(to_number)
            if to_block["timestamp"] > timeout:
                extensions = ArbRetryableTx.LIFETIME_EXTENDED.filter_logs(
                    await self.l2_client.get_logs(
                        ARB_RETRYABLE_TX_ADDRESS,
                        [ArbRetryableTx.LIFETIME_EXTENDED.topic, ticket_topic],
                        from_block["number"],
                        to_number,
                    )
                )
                if not extensions:
                    break
                timeout = max(event["newTimeout"] for event in extensions)

            processed_seconds = to_block["timestamp"] - from_block["timestamp"]
            if processed_seconds > 0:
                increment = max(1, -(-increment * ONE_DAY_SECONDS // processed_seconds))
            if to_number >= latest:
                break
            from_block = await self.l2_client.get_block(to_number + 1)
        return None

    async def wait_for_status(
        self,
        ticket: RetryableTicket,
        target_statuses: Optional[Set[MessageStatus]] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> StatusResult:
        """Poll until the ticket reaches one of ``target_statuses``.

        Defaults to any status other than ``NOT_YET_CREATED`` and to the
        chain pair's deposit timeout. Raises ``MessageTimeout`` when the
        budget runs out and ``OperationCancelled`` when ``cancel_token`` is set.
        A ticket that settles in a terminal status outside the targets can
        never reach them, so the wait stops with ``AlreadyRedeemed``,
        ``Expired`` or ``MessageNotReady`` (creation failed).
        """
        targets = frozenset(target_statuses) if target_statuses else DEFAULT_TARGET_STATUSES
        if timeout is None:
            timeout = self.chain_pair.deposit_timeout_ms / 1000
        deadline = time.monotonic() + timeout
        backoff = self.polling.backoff()
        log = logger.bind(
            chain_id=self.chain_pair.dest_chain_id,
            operation="wait_for_status",
            ticket_id=ticket.ticket_id,
        )

        attempt = 0
        last_status: Optional[MessageStatus] = None
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("wait_for_status")
            try:
                result = await self.get_status_result(ticket)
            except TransientChainError as e:
                log.warning(f"Status read failed, retrying: {e}")
            else:
                last_status = result.status
                if result.status in targets:
                    return result
                if result.status.is_terminal:
                    log.info(f"Ticket settled as {result.status.name}, stopping wait")
                    raise _settled_error(ticket.ticket_id, result.status)
                log.debug(f"Ticket is {result.status.name}, waiting")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise MessageTimeout(
                    f"Ticket {ticket.ticket_id} did not reach "
                    f"{sorted(s.name for s in targets)} within {timeout:.1f}s",
                    ticket_id=ticket.ticket_id,
                    last_status=last_status,
                    timeout=timeout,
                )
            attempt += 1
            await cancellable_sleep(
                min(backoff.get_delay(attempt), remaining), cancel_token, "wait_for_status"
            )
