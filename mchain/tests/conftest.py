"""Shared fixtures for the MChain tests."""

import pytest

from src.blockchain.ledger import mine_block
from src.integration.chain_service import ChainService
from src.storage.chain_store import ChainStore


FIXED_TIME = 1700000000


def fixed_clock():
    return FIXED_TIME


@pytest.fixture
def store(tmp_path):
    """A block store in a fresh temporary directory."""
    return ChainStore(tmp_path / "mchain_data")


@pytest.fixture
def service(store):
    """A chain service with a fixed clock."""
    return ChainService(store, clock=fixed_clock)


@pytest.fixture
def chain():
    """A valid three-block chain mined at difficulty 1."""
    blocks = []
    tip = None
    for i in range(3):
        tip = mine_block(tip, f"block {i}", 1, clock=fixed_clock)
        blocks.append(tip)
    return blocks


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MCHAIN_* variables from the caller's shell out of the tests."""
    for name in ("MCHAIN_DATA_DIR", "MCHAIN_DIFFICULTY",
                 "MCHAIN_SKIP_PLATFORM_CHECK", "MCHAIN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
