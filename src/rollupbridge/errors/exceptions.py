"""Exception hierarchy for rollupbridge.

This module defines the typed failures surfaced by the bridging API. Errors
are grouped by how a caller is expected to react to them: configuration
problems are fatal, transient chain errors are retried inside polling loops,
and protocol state errors leave the on-chain state untouched so the caller can
inspect it and decide what to do next.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    PROTOCOL_STATE = "protocol_state"
    MESSAGE = "message"
    FUNDS = "funds"
    CANCELLED = "cancelled"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    chain_id: Optional[int] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    tx_hash: Optional[str] = None
    ticket_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "chain_id": self.chain_id,
            "component": self.component,
            "operation": self.operation,
            "tx_hash": self.tx_hash,
            "ticket_id": self.ticket_id,
            "metadata": self.metadata,
        }


class BridgeSdkError(Exception):
    """Base exception for all rollupbridge errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        retryable: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.retryable = retryable
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "retryable": self.retryable,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.retryable:
            parts.append("Retryable: Yes")

        return " | ".join(parts)


# Configuration errors: fatal, never retried automatically.


class ConfigurationError(BridgeSdkError):
    """Unregistered or inconsistent chain configuration."""

    def __init__(self, message: str, chain_id: Optional[int] = None, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
        self.chain_id = chain_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["chain_id"] = self.chain_id
        return data


class UnknownNetwork(ConfigurationError):
    """Chain id is not present in the registry."""

    def __init__(self, chain_id: int, **kwargs):
        super().__init__(
            f"Unrecognized network {chain_id}.",
            chain_id=chain_id,
            error_code="UNKNOWN_NETWORK",
            **kwargs,
        )


class NetworkMismatch(ConfigurationError):
    """Two chains do not declare each other as partners, or a duplicate id."""


class MissingSigner(ConfigurationError):
    """An operation that sends a transaction was given a read-only client."""


class UnsupportedGateway(ConfigurationError):
    """The bridger cannot route a token through any gateway it knows."""

    def __init__(self, message: str, token: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", "UNSUPPORTED_GATEWAY")
        super().__init__(message, **kwargs)
        self.token = token

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["token"] = self.token
        return data


class TokenNotBridgeable(UnsupportedGateway):
    """No gateway mapping and no standard gateway fallback for a token."""

    def __init__(self, token: str, reason: str = "no registered gateway", **kwargs):
        super().__init__(
            f"Token {token} is not bridgeable: {reason}",
            token=token,
            error_code="TOKEN_NOT_BRIDGEABLE",
            **kwargs,
        )


# Transient chain errors: retried inside polling loops.


class TransientChainError(BridgeSdkError):
    """RPC timeout, dropped connection, or a transaction not yet mined."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("retryable", True)
        super().__init__(message, category=ErrorCategory.TRANSIENT, **kwargs)


class TransactionNotMined(TransientChainError):
    """Receipt for a submitted transaction is not available yet."""

    def __init__(self, tx_hash: str, timeout: Optional[float] = None, **kwargs):
        message = f"Transaction {tx_hash} not mined"
        if timeout is not None:
            message += f" after {timeout:.1f}s"
        super().__init__(message, error_code="TX_NOT_MINED", **kwargs)
        self.tx_hash = tx_hash
        self.timeout = timeout


class MessageTimeout(TransientChainError):
    """Wait budget exhausted before the message reached a target status.

    Not fatal: the message keeps progressing on chain and the wait can be
    started again.
    """

    def __init__(
        self,
        message: str,
        ticket_id: Optional[str] = None,
        last_status: Optional[Any] = None,
        timeout: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="MESSAGE_TIMEOUT", **kwargs)
        self.ticket_id = ticket_id
        self.last_status = last_status
        self.timeout = timeout

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "ticket_id": self.ticket_id,
                "last_status": getattr(self.last_status, "name", self.last_status),
                "timeout": self.timeout,
            }
        )
        return data


# Protocol state errors: fatal to the call, the ticket is unaffected.


class ProtocolStateError(BridgeSdkError):
    """The on-chain state does not allow the requested action."""

    def __init__(self, message: str, ticket_id: Optional[str] = None, **kwargs):
        super().__init__(message, category=ErrorCategory.PROTOCOL_STATE, **kwargs)
        self.ticket_id = ticket_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["ticket_id"] = self.ticket_id
        return data


class AlreadyRedeemed(ProtocolStateError):
    """Ticket has already been executed successfully."""

    def __init__(self, ticket_id: str, **kwargs):
        super().__init__(
            f"Retryable ticket {ticket_id} has already been redeemed",
            ticket_id=ticket_id,
            error_code="ALREADY_REDEEMED",
            **kwargs,
        )


class Expired(ProtocolStateError):
    """Ticket lifetime elapsed without a successful redemption."""

    def __init__(self, ticket_id: str, **kwargs):
        super().__init__(
            f"Retryable ticket {ticket_id} has expired",
            ticket_id=ticket_id,
            error_code="EXPIRED",
            **kwargs,
        )


class MessageNotReady(ProtocolStateError):
    """Ticket is not redeemable yet (not created, or creation failed)."""


class AlreadyRegistered(ProtocolStateError):
    """Token already has a custom gateway registration."""

    def __init__(self, token: str, gateway: Optional[str] = None, **kwargs):
        message = f"Token {token} is already registered"
        if gateway:
            message += f" to gateway {gateway}"
        super().__init__(message, error_code="ALREADY_REGISTERED", **kwargs)
        self.token = token
        self.gateway = gateway


class InvalidStatusTransition(ProtocolStateError):
    """Observed status would move a ticket backwards in its lifecycle."""

    def __init__(self, current: Any, new: Any, ticket_id: Optional[str] = None, **kwargs):
        super().__init__(
            f"Invalid status transition {current.name} -> {new.name}",
            ticket_id=ticket_id,
            error_code="INVALID_TRANSITION",
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.current = current
        self.new = new


# Everything else.


class NoMessageFound(BridgeSdkError):
    """A source-chain receipt carries no cross-chain message."""

    def __init__(self, tx_hash: str, **kwargs):
        super().__init__(
            f"No retryable message found in transaction {tx_hash}",
            category=ErrorCategory.MESSAGE,
            error_code="NO_MESSAGE_FOUND",
            **kwargs,
        )
        self.tx_hash = tx_hash


class InsufficientFunds(BridgeSdkError):
    """Signer balance cannot cover the amount plus estimated fees."""

    def __init__(
        self,
        address: str,
        required: int,
        available: int,
        asset: str = "ETH",
        **kwargs,
    ):
        super().__init__(
            f"Insufficient {asset} balance for {address}: "
            f"required {required}, available {available}",
            category=ErrorCategory.FUNDS,
            error_code="INSUFFICIENT_FUNDS",
            **kwargs,
        )
        self.address = address
        self.required = required
        self.available = available
        self.asset = asset

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "address": self.address,
                "required": self.required,
                "available": self.available,
                "asset": self.asset,
            }
        )
        return data


class OperationCancelled(BridgeSdkError):
    """A polling operation was stopped through its cancel token."""

    def __init__(self, operation: str, **kwargs):
        super().__init__(
            f"Operation {operation} was cancelled",
            category=ErrorCategory.CANCELLED,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.operation = operation
