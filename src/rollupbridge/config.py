"""
Runtime configuration for rollupbridge.

Connection settings for the two ledgers and the polling budget used by the
status trackers. Values can be built in code or read from the environment.
"""

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .errors import BackoffStrategy, ConfigurationError, RetryPolicy


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(name)
    return value if value not in (None, "") else default


@dataclass
class ChainClientConfig:
    """Connection settings for one ledger."""

    rpc_url: str = "http://localhost:8545"
    chain_id: int = 1
    request_timeout: float = 30.0
    receipt_timeout: float = 300.0
    receipt_poll_interval: float = 1.0
    retry_attempts: int = 3
    retry_delay: float = 1.0
    gas_limit_buffer_percent: int = 20

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.retry_attempts, base_delay=self.retry_delay)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainClientConfig":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_env(cls, prefix: str) -> "ChainClientConfig":
        """Read ``{prefix}_RPC_URL`` and ``{prefix}_CHAIN_ID`` (e.g. ``L1``)."""
        rpc_url = _env(f"{prefix}_RPC_URL")
        if rpc_url is None:
            raise ConfigurationError(f"{prefix}_RPC_URL is not set")
        chain_id = _env(f"{prefix}_CHAIN_ID")
        if chain_id is None:
            raise ConfigurationError(f"{prefix}_CHAIN_ID is not set")
        return cls(
            rpc_url=rpc_url,
            chain_id=int(chain_id),
            request_timeout=float(_env(f"{prefix}_REQUEST_TIMEOUT", "30")),
            receipt_timeout=float(_env(f"{prefix}_RECEIPT_TIMEOUT", "300")),
            retry_attempts=int(_env(f"{prefix}_RETRY_ATTEMPTS", "3")),
        )


@dataclass
class PollingConfig:
    """Polling budget for message status and redemption waits."""

    poll_interval: float = 1.0
    max_poll_interval: float = 15.0
    backoff_multiplier: float = 1.5
    # log range scanned per request when searching for manual redeems
    redeem_search_block_range: int = 1000

    def backoff(self) -> BackoffStrategy:
        return BackoffStrategy(
            strategy_type="exponential",
            base_delay=self.poll_interval,
            max_delay=self.max_poll_interval,
            multiplier=self.backoff_multiplier,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_env(cls) -> "PollingConfig":
        return cls(
            poll_interval=float(_env("BRIDGE_POLL_INTERVAL", "1.0")),
            max_poll_interval=float(_env("BRIDGE_MAX_POLL_INTERVAL", "15.0")),
            backoff_multiplier=float(_env("BRIDGE_BACKOFF_MULTIPLIER", "1.5")),
        )


@dataclass
class BridgeSettings:
    """Everything needed to instantiate bridgers for one chain pair."""

    l1: ChainClientConfig
    l2: ChainClientConfig
    polling: PollingConfig = field(default_factory=PollingConfig)

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        return cls(
            l1=ChainClientConfig.from_env("L1"),
            l2=ChainClientConfig.from_env("L2"),
            polling=PollingConfig.from_env(),
        )
