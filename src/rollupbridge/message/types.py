"""Data model for cross-chain messages and retryable tickets."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from ..errors import InvalidStatusTransition


class MessageStatus(IntEnum):
    """Lifecycle of a retryable ticket as observed on L2."""

    NOT_YET_CREATED = 1
    CREATION_FAILED = 2
    FUNDS_DEPOSITED_ON_L2 = 3
    REDEEMED = 4
    EXPIRED = 5

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, new: "MessageStatus") -> bool:
        return new in STATUS_TRANSITIONS[self]


TERMINAL_STATUSES: FrozenSet[MessageStatus] = frozenset(
    {MessageStatus.CREATION_FAILED, MessageStatus.REDEEMED, MessageStatus.EXPIRED}
)

# Re-observing the current status is always allowed. The first observation of
# a ticket may land after auto-redeem or even after expiry.
STATUS_TRANSITIONS: Dict[MessageStatus, FrozenSet[MessageStatus]] = {
    MessageStatus.NOT_YET_CREATED: frozenset(MessageStatus),
    MessageStatus.CREATION_FAILED: frozenset({MessageStatus.CREATION_FAILED}),
    MessageStatus.FUNDS_DEPOSITED_ON_L2: frozenset(
        {
            MessageStatus.FUNDS_DEPOSITED_ON_L2,
            MessageStatus.REDEEMED,
            MessageStatus.EXPIRED,
        }
    ),
    MessageStatus.REDEEMED: frozenset({MessageStatus.REDEEMED}),
    MessageStatus.EXPIRED: frozenset({MessageStatus.EXPIRED}),
}


@dataclass(frozen=True)
class StatusResult:
    """A status together with the L2 receipt that executed the ticket.

    ``l2_tx_receipt`` is present exactly when the status is ``REDEEMED``.
    """

    status: MessageStatus
    l2_tx_receipt: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        if self.status is MessageStatus.REDEEMED and self.l2_tx_receipt is None:
            raise ValueError("REDEEMED status requires the redemption receipt")
        if self.status is not MessageStatus.REDEEMED and self.l2_tx_receipt is not None:
            raise ValueError(f"{self.status.name} status cannot carry a redemption receipt")


@dataclass(frozen=True)
class SubmittedMessage:
    """A cross-chain message created by a mined L1 transaction."""

    source_tx_hash: str
    source_block_hash: str
    message_number: int
    sender: str
    dest_chain_id: int


@dataclass(frozen=True)
class RetryableMessageParams:
    """Fields of a ``submitRetryableTx`` inbox message."""

    dest_address: str
    l2_call_value: int
    l1_value: int
    max_submission_fee: int
    excess_fee_refund_address: str
    call_value_refund_address: str
    gas_limit: int
    max_fee_per_gas: int
    data: bytes


@dataclass
class RetryableTicketRecord:
    """Client-side record of a retryable ticket.

    Status only moves through :meth:`transition`; records are never removed.
    """

    ticket_id: str
    dest_address: str
    l2_call_value: int
    l1_value: int
    max_submission_cost: int
    excess_fee_refund_address: str
    call_value_refund_address: str
    gas_limit: int
    max_fee_per_gas: int
    call_data: bytes
    call_data_hash: str
    auto_redeem_attempted: bool
    status: MessageStatus = MessageStatus.NOT_YET_CREATED
    redeem_tx_hash: Optional[str] = None

    def transition(
        self, new_status: MessageStatus, redeem_tx_hash: Optional[str] = None
    ) -> bool:
        """Move to ``new_status``; returns whether the status changed."""
        if not self.status.can_transition_to(new_status):
            raise InvalidStatusTransition(self.status, new_status, ticket_id=self.ticket_id)
        if new_status is MessageStatus.REDEEMED and redeem_tx_hash is not None:
            self.redeem_tx_hash = redeem_tx_hash
        changed = new_status is not self.status
        self.status = new_status
        return changed


@dataclass(frozen=True)
class RetryableRequest:
    """What a retryable ticket should do on L2, before fees are attached."""

    sender: str
    to: str
    l2_call_value: int
    excess_fee_refund_address: str
    call_value_refund_address: str
    data: bytes = b""


@dataclass(frozen=True)
class GasOverride:
    """Override for one fee knob.

    ``base`` replaces the estimate (``0`` is honoured), ``percent_increase``
    replaces the default margin and ``minimum`` floors the result.
    """

    base: Optional[int] = None
    percent_increase: Optional[int] = None
    minimum: int = 0


@dataclass(frozen=True)
class GasOverrides:
    max_submission_fee: GasOverride = field(default_factory=GasOverride)
    gas_limit: GasOverride = field(default_factory=GasOverride)
    max_fee_per_gas: GasOverride = field(default_factory=GasOverride)
    deposit: GasOverride = field(default_factory=GasOverride)


@dataclass(frozen=True)
class RetryableGasEstimate:
    gas_limit: int
    max_fee_per_gas: int
    max_submission_cost: int
    deposit: int
