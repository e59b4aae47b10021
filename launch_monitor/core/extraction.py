"""
Heuristic mint and SOL-inflow extraction for pump.fun transactions

Transactions don't say which account is the newly created mint, so the
mint is guessed from fixed account positions, tried in priority order.
The SOL amount is the sum of positive lamport deltas on address-like
accounts.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from solders.pubkey import Pubkey

from launch_monitor.core.logger import Logger, get_logger
from launch_monitor.core.models import ParsedTransaction


LAMPORTS_PER_SOL = 1_000_000_000

MIN_ADDRESS_LENGTH = 32
MAX_ADDRESS_LENGTH = 44

# Positions in the transaction account list where pump.fun creates put the mint
ACCOUNT_KEY_CANDIDATES = (2, 1, 3, 4, 5, 6, 7, 8)

# Positions within a pump.fun instruction's own account list
INSTRUCTION_ACCOUNT_CANDIDATES = (2, 3, 8, 9, 0)


def looks_like_address(value) -> bool:
    """Length-only base58 address check"""
    return isinstance(value, str) and MIN_ADDRESS_LENGTH <= len(value) <= MAX_ADDRESS_LENGTH


def is_valid_address(value) -> bool:
    """Address-like string that also decodes to a 32 byte public key"""
    if not looks_like_address(value):
        return False
    try:
        Pubkey.from_string(value)
    except Exception:  # solders raises on bad base58 or wrong byte length
        return False
    return True


@dataclass
class ExtractionResult:
    """Successful identity match and the strategy that produced it"""
    identity: str
    strategy: str


@dataclass
class Extraction:
    """Everything extraction learned from one transaction"""
    identity: Optional[str]
    amount: float
    strategy: Optional[str] = None


class IdentityStrategy:
    """Base for mint extraction strategies. Returns None when nothing matches."""

    name = "base"

    def extract(self, tx: ParsedTransaction) -> Optional[ExtractionResult]:
        raise NotImplementedError


class AccountKeyStrategy(IdentityStrategy):
    """First valid address among fixed positions of the transaction account list"""

    name = "account_keys"

    def __init__(self, candidate_indices: Sequence[int] = ACCOUNT_KEY_CANDIDATES):
        self.candidate_indices = tuple(candidate_indices)

    def extract(self, tx: ParsedTransaction) -> Optional[ExtractionResult]:
        keys = tx.account_keys
        for idx in self.candidate_indices:
            if idx < len(keys) and is_valid_address(keys[idx]):
                return ExtractionResult(identity=keys[idx], strategy=f"{self.name}[{idx}]")
        return None


class ProgramInstructionStrategy(IdentityStrategy):
    """First valid address among fixed positions of the source program's instructions"""

    name = "program_instruction"

    def __init__(self, program_id: str, candidate_indices: Sequence[int] = INSTRUCTION_ACCOUNT_CANDIDATES):
        self.program_id = program_id
        self.candidate_indices = tuple(candidate_indices)

    def extract(self, tx: ParsedTransaction) -> Optional[ExtractionResult]:
        for ix in tx.instructions:
            if ix.program_id != self.program_id:
                continue
            for idx in self.candidate_indices:
                if idx < len(ix.accounts) and is_valid_address(ix.accounts[idx]):
                    return ExtractionResult(identity=ix.accounts[idx], strategy=f"{self.name}[{idx}]")
        return None


class ExtractionEngine:
    """Runs identity strategies in order and computes the attributable SOL amount"""

    def __init__(
        self,
        program_id: str,
        strategies: Optional[List[IdentityStrategy]] = None,
        noise_floor_sol: float = 0.001,
        nominal_amount_sol: float = 0.01,
        logger: Optional[Logger] = None
    ):
        """
        Args:
            program_id: Program whose transactions are being watched
            strategies: Identity strategies in priority order
            noise_floor_sol: Positive deltas at or below this are ignored
            nominal_amount_sol: Reported for fee-paying transactions with no attributable inflow
            logger: Logger, defaults to the module structlog logger
        """
        self.program_id = program_id
        if strategies is None:
            strategies = [AccountKeyStrategy(), ProgramInstructionStrategy(program_id)]
        self.strategies = strategies
        self.noise_floor_sol = noise_floor_sol
        self.nominal_amount_sol = nominal_amount_sol
        self.logger = logger or get_logger(__name__)

    def extract_identity(self, tx: ParsedTransaction) -> Optional[ExtractionResult]:
        """First strategy to return a result wins"""
        try:
            for strategy in self.strategies:
                result = strategy.extract(tx)
                if result is not None:
                    return result
        except Exception as e:
            self.logger.debug("identity_extraction_failed", signature=tx.signature[:8], error=str(e))
        return None

    def attributable_amount(self, tx: ParsedTransaction) -> float:
        """
        Sum of positive SOL deltas on the program or address-like accounts

        A fee-paying transaction with nothing attributable reports the
        nominal amount instead of zero. This is a tunable heuristic, not an
        on-chain fact.
        """
        try:
            total = 0.0
            keys = tx.account_keys
            count = min(len(tx.pre_balances), len(tx.post_balances))

            for i in range(count):
                change = (tx.post_balances[i] or 0) - (tx.pre_balances[i] or 0)
                if change <= 0 or i >= len(keys):
                    continue

                account = keys[i]
                if account != self.program_id and not looks_like_address(account):
                    continue

                sol_amount = change / LAMPORTS_PER_SOL
                if sol_amount > self.noise_floor_sol:
                    total += sol_amount

            if total == 0 and tx.fee:
                return self.nominal_amount_sol

            return total
        except Exception as e:
            self.logger.debug("amount_extraction_failed", signature=tx.signature[:8], error=str(e))
            return 0.0

    def extract(self, tx: ParsedTransaction) -> Extraction:
        """Identity and amount for one transaction"""
        result = self.extract_identity(tx)
        if result is None:
            return Extraction(identity=None, amount=0.0)

        return Extraction(
            identity=result.identity,
            amount=self.attributable_amount(tx),
            strategy=result.strategy
        )
