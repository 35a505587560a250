"""Shared fixtures: a pair of connected in-memory ledgers and bridgers bound to them."""

import pytest

from fakes import CUSTOM_TOKEN, STANDARD_TOKEN, build_fake_pair
from rollupbridge import AdminErc20Bridger, Erc20Bridger, EthBridger, PollingConfig


@pytest.fixture
def chains():
    return build_fake_pair()


@pytest.fixture
def l1(chains):
    return chains[0]


@pytest.fixture
def l2(chains):
    return chains[1]


@pytest.fixture
def chain_pair(chains):
    return chains[2]


@pytest.fixture
def polling():
    return PollingConfig(poll_interval=0.01, max_poll_interval=0.05, backoff_multiplier=1.5)


@pytest.fixture
def eth_bridger(l1, l2, chain_pair, polling):
    return EthBridger(l1, l2, chain_pair, polling)


@pytest.fixture
def erc20_bridger(l1, l2, chain_pair, polling):
    return Erc20Bridger(l1, l2, chain_pair, polling)


@pytest.fixture
def admin_bridger(l1, l2, chain_pair, polling):
    return AdminErc20Bridger(l1, l2, chain_pair, polling)


@pytest.fixture
def standard_token(l1):
    return l1.deploy_token(STANDARD_TOKEN, l1.address, 1000)


@pytest.fixture
def custom_token(l1):
    return l1.deploy_token(CUSTOM_TOKEN, l1.address, 1000, custom=True)
