"""
Pytest configuration and shared fixtures
These fixtures are available to all test files
"""

import pytest
from typing import Dict, List, Optional, Set
from unittest.mock import MagicMock

from solders.pubkey import Pubkey

from launch_monitor.core.config import MonitorConfig, PUMP_FUN_PROGRAM_ID
from launch_monitor.core.metrics import MetricsCollector
from launch_monitor.core.models import ParsedInstruction, ParsedTransaction, SignatureInfo


LAMPORTS = 1_000_000_000


def new_address() -> str:
    """Fresh valid base58 public key"""
    return str(Pubkey.new_unique())


class FakeClock:
    """Manually advanced epoch-seconds clock"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRPC:
    """In-memory signature source and transaction fetcher"""

    def __init__(self):
        self.signatures: List[SignatureInfo] = []
        self.transactions: Dict[str, ParsedTransaction] = {}
        self.failing: Set[str] = set()
        self.fail_listing = False
        self.fetched: List[str] = []
        self.listing_calls = 0

    def add(self, tx: ParsedTransaction, block_time: Optional[int] = None) -> None:
        """Publish a transaction as the most recent signature"""
        self.signatures.insert(0, SignatureInfo(tx.signature, block_time))
        self.transactions[tx.signature] = tx

    async def get_signatures_for_address(self, address: str, limit: int) -> List[SignatureInfo]:
        self.listing_calls += 1
        if self.fail_listing:
            raise ConnectionError("rpc unavailable")
        return list(self.signatures[:limit])

    async def get_parsed_transaction(self, signature: str) -> Optional[ParsedTransaction]:
        self.fetched.append(signature)
        if signature in self.failing:
            raise ConnectionError(f"fetch failed for {signature}")
        return self.transactions.get(signature)


def make_buy_tx(
    signature: str,
    mint: str,
    inflow_sol: float,
    fee: int = 5000,
    block_time: Optional[int] = None
) -> ParsedTransaction:
    """
    Pump.fun-shaped transaction: payer, program, mint, bonding curve

    The bonding curve receives inflow_sol; the payer pays inflow plus fee.
    """
    payer = new_address()
    curve = new_address()
    inflow = int(inflow_sol * LAMPORTS)
    return ParsedTransaction(
        signature=signature,
        account_keys=[payer, PUMP_FUN_PROGRAM_ID, mint, curve],
        instructions=[ParsedInstruction(PUMP_FUN_PROGRAM_ID, [mint, curve, mint, curve])],
        pre_balances=[100 * LAMPORTS, LAMPORTS, 0, LAMPORTS],
        post_balances=[100 * LAMPORTS - inflow - fee, LAMPORTS, 0, LAMPORTS + inflow],
        fee=fee,
        block_time=block_time
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_rpc() -> FakeRPC:
    return FakeRPC()


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    collector = MetricsCollector()
    yield collector
    collector.reset()


@pytest.fixture
def monitor_config() -> MonitorConfig:
    """Threshold 5 SOL, 2s confirmation delay, short intervals"""
    return MonitorConfig(
        poll_interval_ms=10,
        scan_interval_ms=10,
        min_value_to_track=5.0,
        confirmation_delay_ms=2000
    )


@pytest.fixture
def test_config_dict() -> Dict:
    """Valid raw configuration, modified per test"""
    return {
        "rpc": {
            "endpoint": "https://api.devnet.solana.com",
            "timeout_s": 5,
            "max_concurrent": 4
        },
        "monitor": {
            "poll_interval_ms": 250,
            "min_value_to_track": 7.5,
            "confirmation_delay_ms": 3000,
            "signature_limit": 25
        },
        "logging": {
            "level": "DEBUG",
            "format": "json",
            "output_file": None
        },
        "metrics": {
            "enabled": False
        }
    }


@pytest.fixture
def test_config_file(test_config_dict, tmp_path):
    """Temporary YAML config file built from test_config_dict"""
    import yaml

    config_file = tmp_path / "test_config.yml"
    with open(config_file, 'w') as f:
        yaml.dump(test_config_dict, f)

    return str(config_file)


@pytest.fixture
def make_tx():
    """Factory for pump.fun-shaped buy transactions"""
    return make_buy_tx


@pytest.fixture
def address():
    """Factory for fresh valid addresses"""
    return new_address
