"""
Data types for the launch monitor
"""

from dataclasses import dataclass, field
from typing import Awaitable, List, Optional, Protocol, Tuple


@dataclass
class SignatureInfo:
    """One entry returned by getSignaturesForAddress"""
    signature: str
    block_time: Optional[int] = None  # unix seconds


@dataclass
class ParsedInstruction:
    """Top-level instruction: executing program and its account addresses"""
    program_id: str
    accounts: List[str] = field(default_factory=list)


@dataclass
class ParsedTransaction:
    """Parsed transaction record as consumed by extraction"""
    signature: str
    account_keys: List[str]
    instructions: List[ParsedInstruction] = field(default_factory=list)
    pre_balances: List[int] = field(default_factory=list)  # lamports
    post_balances: List[int] = field(default_factory=list)  # lamports
    fee: int = 0
    block_time: Optional[int] = None


@dataclass
class TrackedTransaction:
    """A transaction attributed to a tracked token"""
    signature: str
    amount: float  # SOL
    observed_at: float  # epoch seconds


@dataclass
class TrackedToken:
    """Aggregation state for one candidate token mint"""
    identity: str
    first_seen: float
    transactions: List[TrackedTransaction] = field(default_factory=list)
    accumulated_amount: float = 0.0
    last_checked: float = 0.0

    def add(self, signature: str, amount: float, observed_at: float) -> None:
        """Append a transaction and keep the running total in step"""
        self.transactions.append(TrackedTransaction(signature, amount, observed_at))
        self.accumulated_amount += amount
        self.last_checked = observed_at

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


@dataclass(frozen=True)
class ConfirmedLaunchEvent:
    """Immutable snapshot emitted once a tracked token is confirmed"""
    identity: str
    observed_at: float
    accumulated_amount: float
    transaction_count: int
    source: str
    first_seen: float
    signatures: Tuple[str, ...] = ()


class SignatureSource(Protocol):
    def get_signatures_for_address(self, address: str, limit: int) -> Awaitable[List[SignatureInfo]]: ...


class TransactionFetcher(Protocol):
    def get_parsed_transaction(self, signature: str) -> Awaitable[Optional[ParsedTransaction]]: ...
