"""
Retryable tickets.

A retryable ticket is created on L2 by an L1 inbox message of kind
``submitRetryableTx``. Its id is derived deterministically from the message,
so the ticket (and its creation transaction, which has the same hash) can be
found on L2 from the L1 receipt alone. This module holds the id derivation,
the message codec and the redemption handles.
"""

from typing import TYPE_CHECKING, Optional, Set

import rlp
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import keccak
from web3.exceptions import ContractLogicError

from ..chain import ChainClient, Receipt, checksum, is_zero_address, to_bytes, to_hex_str
from ..chain.contracts import ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx, Inbox
from ..errors import (
    AlreadyRedeemed,
    CancelToken,
    Expired,
    MessageNotReady,
    NoMessageFound,
)
from ..logging import LogContext, get_logger
from .types import (
    MessageStatus,
    RetryableGasEstimate,
    RetryableMessageParams,
    RetryableRequest,
    RetryableTicketRecord,
    StatusResult,
    SubmittedMessage,
)

if TYPE_CHECKING:
    from .tracker import MessageStatusTracker

logger = get_logger(__name__)

L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX = 9
SUBMIT_RETRYABLE_TX_TYPE = 0x69

_MESSAGE_HEAD_TYPES = ["uint256"] * 9


def _address_bytes(address: str) -> bytes:
    return to_bytes(checksum(address))


def calculate_submit_retryable_id(
    l2_chain_id: int,
    sender: str,
    message_number: int,
    l1_base_fee: int,
    dest_address: str,
    l2_call_value: int,
    l1_value: int,
    max_submission_fee: int,
    excess_fee_refund_address: str,
    call_value_refund_address: str,
    gas_limit: int,
    max_fee_per_gas: int,
    data: bytes,
) -> str:
    """Ticket id (and L2 creation tx hash) of a submitted retryable message."""
    fields = [
        l2_chain_id,
        message_number.to_bytes(32, "big"),
        _address_bytes(sender),
        l1_base_fee,
        l1_value,
        max_fee_per_gas,
        gas_limit,
        b"" if is_zero_address(dest_address) else _address_bytes(dest_address),
        l2_call_value,
        _address_bytes(call_value_refund_address),
        max_submission_fee,
        _address_bytes(excess_fee_refund_address),
        bytes(data),
    ]
    return to_hex_str(keccak(bytes([SUBMIT_RETRYABLE_TX_TYPE]) + rlp.encode(fields)))


def _word_to_address(word: int) -> str:
    return checksum("0x%040x" % (word & ((1 << 160) - 1)))


def parse_submit_retryable_data(data: bytes) -> RetryableMessageParams:
    """Decode the ``data`` of an ``InboxMessageDelivered`` event of kind 9."""
    data = bytes(data)
    head_size = 32 * len(_MESSAGE_HEAD_TYPES)
    if len(data) < head_size:
        raise ValueError(f"Retryable message data too short: {len(data)} bytes")
    (
        dest,
        l2_call_value,
        l1_value,
        max_submission_fee,
        excess_fee_refund,
        call_value_refund,
        gas_limit,
        max_fee_per_gas,
        data_length,
    ) = abi_decode(_MESSAGE_HEAD_TYPES, data[:head_size])
    call_data = data[head_size : head_size + data_length]
    if len(call_data) != data_length:
        raise ValueError("Retryable message calldata is truncated")

    return RetryableMessageParams(
        dest_address=_word_to_address(dest),
        l2_call_value=l2_call_value,
        l1_value=l1_value,
        max_submission_fee=max_submission_fee,
        excess_fee_refund_address=_word_to_address(excess_fee_refund),
        call_value_refund_address=_word_to_address(call_value_refund),
        gas_limit=gas_limit,
        max_fee_per_gas=max_fee_per_gas,
        data=call_data,
    )


def encode_submit_retryable_data(params: RetryableMessageParams) -> bytes:
    """Inverse of :func:`parse_submit_retryable_data`."""
    head = abi_encode(
        _MESSAGE_HEAD_TYPES,
        [
            int(params.dest_address, 16),
            params.l2_call_value,
            params.l1_value,
            params.max_submission_fee,
            int(params.excess_fee_refund_address, 16),
            int(params.call_value_refund_address, 16),
            params.gas_limit,
            params.max_fee_per_gas,
            len(params.data),
        ],
    )
    return head + bytes(params.data)


def create_retryable_ticket_calldata(
    request: RetryableRequest, estimate: RetryableGasEstimate
) -> bytes:
    """Calldata of ``Inbox.createRetryableTicket`` for a request and its fees."""
    return Inbox.CREATE_RETRYABLE_TICKET.encode(
        request.to,
        request.l2_call_value,
        estimate.max_submission_cost,
        request.excess_fee_refund_address,
        request.call_value_refund_address,
        estimate.gas_limit,
        estimate.max_fee_per_gas,
        request.data,
    )


class RedeemHandle:
    """A submitted manual redemption."""

    def __init__(self, l2_client: ChainClient, redeem_tx_hash: str, ticket_id: str):
        self.l2_client = l2_client
        self.redeem_tx_hash = redeem_tx_hash
        self.ticket_id = ticket_id

    async def wait_for_redeem(
        self, timeout: Optional[float] = None, cancel_token: Optional[CancelToken] = None
    ) -> Receipt:
        """Wait for the retry transaction scheduled by this redemption.

        Returns the retry receipt whatever its status; a reverted retry
        (status 0) leaves the ticket redeemable.
        """
        receipt = await self.l2_client.wait_for_receipt(
            self.redeem_tx_hash, timeout=timeout, cancel_token=cancel_token
        )
        events = ArbRetryableTx.REDEEM_SCHEDULED.filter_logs(
            receipt.get("logs", []), ARB_RETRYABLE_TX_ADDRESS
        )
        if len(events) != 1:
            raise NoMessageFound(
                self.redeem_tx_hash, metadata={"redeem_scheduled_events": len(events)}
            )

        retry_hash = to_hex_str(events[0]["retryTxHash"])
        retry_receipt = await self.l2_client.wait_for_receipt(
            retry_hash, timeout=timeout, cancel_token=cancel_token
        )
        logger.info(
            f"Redeem attempt finished with status {retry_receipt['status']}",
            context=LogContext(
                chain_id=self.l2_client.chain_id,
                operation="wait_for_redeem",
                tx_hash=retry_hash,
                ticket_id=self.ticket_id,
            ),
        )
        return retry_receipt


class RetryableTicket:
    """A retryable ticket created on L2 by an L1 message."""

    def __init__(
        self,
        l2_client: ChainClient,
        tracker: "MessageStatusTracker",
        message: SubmittedMessage,
        params: RetryableMessageParams,
        l1_base_fee: int,
    ):
        self.l2_client = l2_client
        self.tracker = tracker
        self.message = message
        self.params = params
        self.l1_base_fee = l1_base_fee
        self.ticket_id = calculate_submit_retryable_id(
            l2_chain_id=message.dest_chain_id,
            sender=message.sender,
            message_number=message.message_number,
            l1_base_fee=l1_base_fee,
            dest_address=params.dest_address,
            l2_call_value=params.l2_call_value,
            l1_value=params.l1_value,
            max_submission_fee=params.max_submission_fee,
            excess_fee_refund_address=params.excess_fee_refund_address,
            call_value_refund_address=params.call_value_refund_address,
            gas_limit=params.gas_limit,
            max_fee_per_gas=params.max_fee_per_gas,
            data=params.data,
        )
        self.record = RetryableTicketRecord(
            ticket_id=self.ticket_id,
            dest_address=params.dest_address,
            l2_call_value=params.l2_call_value,
            l1_value=params.l1_value,
            max_submission_cost=params.max_submission_fee,
            excess_fee_refund_address=params.excess_fee_refund_address,
            call_value_refund_address=params.call_value_refund_address,
            gas_limit=params.gas_limit,
            max_fee_per_gas=params.max_fee_per_gas,
            call_data=params.data,
            call_data_hash=to_hex_str(keccak(params.data)),
            auto_redeem_attempted=False,
        )
        self._log = logger.bind(chain_id=l2_client.chain_id, ticket_id=self.ticket_id)

    def __repr__(self) -> str:
        return (
            f"RetryableTicket(ticket_id={self.ticket_id}, "
            f"message_number={self.message.message_number}, status={self.record.status.name})"
        )

    @property
    def _ticket_bytes(self) -> bytes:
        return to_bytes(self.ticket_id)

    # Reads

    async def get_creation_receipt(self) -> Optional[Receipt]:
        """L2 receipt of the ticket creation; its hash is the ticket id."""
        return await self.l2_client.get_receipt(self.ticket_id)

    async def get_auto_redeem_attempt(self) -> Optional[Receipt]:
        """Receipt of the auto-redeem scheduled by the creation, if any."""
        creation = await self.get_creation_receipt()
        if creation is None:
            return None
        events = ArbRetryableTx.REDEEM_SCHEDULED.filter_logs(
            creation.get("logs", []), ARB_RETRYABLE_TX_ADDRESS
        )
        if not events:
            return None
        self.record.auto_redeem_attempted = True
        return await self.l2_client.get_receipt(events[0]["retryTxHash"])

    async def get_timeout(self) -> int:
        """Timestamp after which the ticket expires (raises if it is gone)."""
        return await self.l2_client.call(
            ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx.GET_TIMEOUT, self._ticket_bytes
        )

    async def get_lifetime(self) -> int:
        return await self.l2_client.call(ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx.GET_LIFETIME)

    async def get_beneficiary(self) -> str:
        """Address that receives the call value if the ticket is cancelled."""
        return await self.l2_client.call(
            ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx.GET_BENEFICIARY, self._ticket_bytes
        )

    async def exists(self) -> bool:
        """Whether the ticket is still alive on L2."""
        try:
            timeout = await self.get_timeout()
        except ContractLogicError:
            return False
        latest = await self.l2_client.get_block("latest")
        return timeout >= latest["timestamp"]

    async def status(self) -> MessageStatus:
        return (await self.get_successful_redeem()).status

    async def get_successful_redeem(self) -> StatusResult:
        return await self.tracker.get_status_result(self)

    async def wait_for_status(
        self,
        target_statuses: Optional[Set[MessageStatus]] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> StatusResult:
        return await self.tracker.wait_for_status(
            self, target_statuses=target_statuses, timeout=timeout, cancel_token=cancel_token
        )

    # Redemption

    async def _require_redeemable(self) -> None:
        status = await self.status()
        if status is MessageStatus.REDEEMED:
            raise AlreadyRedeemed(self.ticket_id)
        if status is MessageStatus.EXPIRED:
            raise Expired(self.ticket_id)
        if status is not MessageStatus.FUNDS_DEPOSITED_ON_L2:
            raise MessageNotReady(
                f"Retryable ticket {self.ticket_id} is {status.name}, not redeemable",
                ticket_id=self.ticket_id,
            )

    async def estimate_redeem_gas(self) -> int:
        """Gas needed to redeem the ticket now.

        Raises ``AlreadyRedeemed``, ``Expired`` or ``MessageNotReady`` when
        the ticket cannot be redeemed.
        """
        await self._require_redeemable()
        return await self.l2_client.estimate_gas(
            ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx.REDEEM.encode(self._ticket_bytes)
        )

    async def redeem(self, gas_limit: Optional[int] = None) -> RedeemHandle:
        """Submit one manual redemption. Failures are not retried."""
        tx_hash = await self.l2_client.send_transaction(
            ARB_RETRYABLE_TX_ADDRESS,
            ArbRetryableTx.REDEEM.encode(self._ticket_bytes),
            gas=gas_limit,
        )
        self._log.info("Submitted manual redeem", context=LogContext(tx_hash=tx_hash))
        return RedeemHandle(self.l2_client, tx_hash, self.ticket_id)

    async def cancel(self) -> Receipt:
        """Cancel the ticket, refunding the call value to its beneficiary."""
        await self._require_redeemable()
        receipt = await self.l2_client.transact(
            ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx.CANCEL, self._ticket_bytes
        )
        self._log.info("Cancelled retryable ticket")
        return receipt

    async def keep_alive(self) -> Receipt:
        """Extend the ticket lifetime by one lifetime period."""
        await self._require_redeemable()
        receipt = await self.l2_client.transact(
            ARB_RETRYABLE_TX_ADDRESS, ArbRetryableTx.KEEPALIVE, self._ticket_bytes
        )
        self._log.info("Extended retryable ticket lifetime")
        return receipt
