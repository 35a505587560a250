"""Cross-chain messages: retryable tickets, status tracking and withdrawals."""

from .gas_estimator import (
    DEFAULT_GAS_LIMIT_PERCENT_INCREASE,
    DEFAULT_GAS_PRICE_PERCENT_INCREASE,
    DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE,
    RetryableGasEstimator,
    get_base_fee,
    percent_increase,
)
from .retryable import (
    L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX,
    RedeemHandle,
    RetryableTicket,
    calculate_submit_retryable_id,
    create_retryable_ticket_calldata,
    encode_submit_retryable_data,
    parse_submit_retryable_data,
)
from .tracker import MessageStatusTracker
from .types import (
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    GasOverride,
    GasOverrides,
    MessageStatus,
    RetryableGasEstimate,
    RetryableMessageParams,
    RetryableRequest,
    RetryableTicketRecord,
    StatusResult,
    SubmittedMessage,
)
from .withdrawal import WithdrawalRecord

__all__ = [
    "DEFAULT_GAS_LIMIT_PERCENT_INCREASE",
    "DEFAULT_GAS_PRICE_PERCENT_INCREASE",
    "DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE",
    "RetryableGasEstimator",
    "get_base_fee",
    "percent_increase",
    "L1_MESSAGE_TYPE_SUBMIT_RETRYABLE_TX",
    "RedeemHandle",
    "RetryableTicket",
    "calculate_submit_retryable_id",
    "create_retryable_ticket_calldata",
    "encode_submit_retryable_data",
    "parse_submit_retryable_data",
    "MessageStatusTracker",
    "STATUS_TRANSITIONS",
    "TERMINAL_STATUSES",
    "GasOverride",
    "GasOverrides",
    "MessageStatus",
    "RetryableGasEstimate",
    "RetryableMessageParams",
    "RetryableRequest",
    "RetryableTicketRecord",
    "StatusResult",
    "SubmittedMessage",
    "WithdrawalRecord",
]
