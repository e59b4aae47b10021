"""
Per-mint aggregation and confirmation

A token is confirmed once its accumulated SOL reaches the threshold, the
confirmation delay has passed since it was first seen, and at least two
transactions were observed. A single large buy followed by silence never
confirms.
"""

import time
from typing import Callable, Dict, List, Optional

from launch_monitor.core.logger import Logger, get_logger
from launch_monitor.core.models import ConfirmedLaunchEvent, TrackedToken


class TokenTracker:
    """Owns all TrackedToken state"""

    def __init__(
        self,
        min_value_to_track: float = 5.0,
        confirmation_delay_ms: int = 2000,
        min_transactions: int = 2,
        source: str = "pumpfun",
        clock: Callable[[], float] = time.time,
        logger: Optional[Logger] = None
    ):
        self.min_value_to_track = min_value_to_track
        self.confirmation_delay_s = confirmation_delay_ms / 1000
        self.min_transactions = min_transactions
        self.source = source
        self.clock = clock
        self.logger = logger or get_logger(__name__)
        self._tokens: Dict[str, TrackedToken] = {}

    def record(self, identity: str, signature: str, amount: float) -> TrackedToken:
        """
        Attribute a transaction to a mint, starting tracking if it's new

        Args:
            identity: Mint address
            signature: Transaction signature
            amount: Attributable SOL

        Returns:
            The live tracking entry
        """
        now = self.clock()
        token = self._tokens.get(identity)

        if token is None:
            token = TrackedToken(identity=identity, first_seen=now)
            token.add(signature, amount, now)
            self._tokens[identity] = token
            self.logger.info(
                "token_tracking_started",
                mint=identity,
                amount_sol=round(amount, 4)
            )
        else:
            token.add(signature, amount, now)
            self.logger.debug(
                "token_tracking_updated",
                mint=identity[:8],
                total_sol=round(token.accumulated_amount, 2),
                transactions=token.transaction_count
            )

        return token

    def is_confirmed(self, token: TrackedToken, now: float) -> bool:
        return (
            token.accumulated_amount >= self.min_value_to_track
            and now - token.first_seen >= self.confirmation_delay_s
            and token.transaction_count >= self.min_transactions
        )

    def scan(self) -> List[ConfirmedLaunchEvent]:
        """
        Confirm and remove every token meeting all three conditions

        Returns:
            Snapshots for the tokens confirmed by this scan
        """
        now = self.clock()
        confirmed = [token for token in self._tokens.values() if self.is_confirmed(token, now)]

        events = []
        for token in confirmed:
            del self._tokens[token.identity]
            events.append(ConfirmedLaunchEvent(
                identity=token.identity,
                observed_at=now,
                accumulated_amount=token.accumulated_amount,
                transaction_count=token.transaction_count,
                source=self.source,
                first_seen=token.first_seen,
                signatures=tuple(tx.signature for tx in token.transactions)
            ))

        return events

    def get(self, identity: str) -> Optional[TrackedToken]:
        return self._tokens.get(identity)

    def identities(self) -> List[str]:
        return list(self._tokens.keys())

    def clear(self) -> None:
        self._tokens.clear()

    def __contains__(self, identity: str) -> bool:
        return identity in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)
