"""
Unit tests for runtime configuration.
"""

import logging

logger = logging.getLogger(__name__)

import pytest

from rollupbridge.config import BridgeSettings, ChainClientConfig, PollingConfig
from rollupbridge.errors import ConfigurationError


class TestChainClientConfig:
    """Test ChainClientConfig construction."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("L1_RPC_URL", "http://l1.example:8545")
        monkeypatch.setenv("L1_CHAIN_ID", "1337")
        monkeypatch.setenv("L1_RECEIPT_TIMEOUT", "60")
        config = ChainClientConfig.from_env("L1")
        assert config.rpc_url == "http://l1.example:8545"
        assert config.chain_id == 1337
        assert config.receipt_timeout == 60.0
        assert config.request_timeout == 30.0

    @pytest.mark.parametrize("missing", ["L2_RPC_URL", "L2_CHAIN_ID"])
    def test_from_env_requires_url_and_chain_id(self, monkeypatch, missing):
        monkeypatch.setenv("L2_RPC_URL", "http://l2.example:8547")
        monkeypatch.setenv("L2_CHAIN_ID", "412346")
        monkeypatch.delenv(missing)
        with pytest.raises(ConfigurationError) as exc_info:
            ChainClientConfig.from_env("L2")
        assert missing in exc_info.value.message

    def test_empty_value_counts_as_missing(self, monkeypatch):
        monkeypatch.setenv("L1_RPC_URL", "")
        monkeypatch.setenv("L1_CHAIN_ID", "1")
        with pytest.raises(ConfigurationError):
            ChainClientConfig.from_env("L1")

    def test_dict_round_trip_ignores_unknown_keys(self):
        config = ChainClientConfig(rpc_url="http://x", chain_id=5, retry_attempts=7)
        data = config.to_dict()
        data["unused"] = True
        assert ChainClientConfig.from_dict(data) == config

    def test_retry_policy(self):
        policy = ChainClientConfig(retry_attempts=5, retry_delay=0.25).retry_policy()
        assert policy.max_retries == 5
        assert policy.base_delay == 0.25


class TestPollingConfig:
    """Test PollingConfig."""

    def test_backoff_is_capped(self):
        backoff = PollingConfig(poll_interval=1.0, max_poll_interval=3.0).backoff()
        assert backoff.get_delay(1) == 1.0
        assert backoff.get_delay(2) == 1.5
        assert backoff.get_delay(10) == 3.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("BRIDGE_MAX_POLL_INTERVAL", "4")
        config = PollingConfig.from_env()
        assert config.poll_interval == 0.5
        assert config.max_poll_interval == 4.0
        assert config.backoff_multiplier == 1.5


class TestBridgeSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("L1_RPC_URL", "http://l1")
        monkeypatch.setenv("L1_CHAIN_ID", "1337")
        monkeypatch.setenv("L2_RPC_URL", "http://l2")
        monkeypatch.setenv("L2_CHAIN_ID", "412346")
        settings = BridgeSettings.from_env()
        assert (settings.l1.chain_id, settings.l2.chain_id) == (1337, 412346)
        assert settings.polling == PollingConfig.from_env()
