"""
Signature dedup and start-time filter

Signatures are marked processed before they are fetched, so a failed fetch
is never retried on a later poll (at-most-once).
"""

import time
from typing import Callable, Dict, Iterable, List, Optional

from launch_monitor.core.logger import Logger, get_logger
from launch_monitor.core.models import SignatureInfo


class SignatureFilter:
    """Drops already-processed signatures and ones older than the run start"""

    def __init__(
        self,
        start_time: Optional[float] = None,
        retention_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[Logger] = None
    ):
        """
        Args:
            start_time: Epoch seconds; known block times before this are dropped
            retention_s: Forget processed signatures whose block time is older
                than this many seconds (None keeps all)
            clock: Time source in epoch seconds
            logger: Logger, defaults to the module structlog logger
        """
        self.clock = clock
        self.start_time = start_time if start_time is not None else clock()
        self.retention_s = retention_s
        self.logger = logger or get_logger(__name__)
        # signature -> block time reported when it was marked processed
        self._processed: Dict[str, Optional[int]] = {}

    def reset(self, start_time: Optional[float] = None) -> None:
        """Clear the processed set and move the start-time cutoff"""
        self._processed.clear()
        self.start_time = start_time if start_time is not None else self.clock()

    def is_too_old(self, block_time: Optional[int]) -> bool:
        """Only a known, non-zero block time can be judged against the cutoff"""
        return bool(block_time) and block_time < self.start_time

    def is_expired(self, block_time: Optional[int], now: float) -> bool:
        """Known block time older than the retention window"""
        if self.retention_s is None or not block_time:
            return False
        return block_time < now - self.retention_s

    def filter(self, signatures: Iterable[SignatureInfo]) -> List[SignatureInfo]:
        """
        Select the signatures that still need processing

        Args:
            signatures: Batch as returned by the signature source

        Returns:
            New signatures in their original order, already marked processed
        """
        now = self.clock()
        self._evict_expired(now)

        fresh = []
        for info in signatures:
            # Evicted entries are always expired, so this keeps them out for good
            if self.is_expired(info.block_time, now):
                continue

            if info.signature in self._processed:
                continue

            if self.is_too_old(info.block_time):
                self.logger.debug(
                    "skipping_old_signature",
                    signature=info.signature[:8],
                    block_time=info.block_time
                )
                continue

            self._processed[info.signature] = info.block_time
            fresh.append(info)

        return fresh

    def _evict_expired(self, now: float) -> None:
        if self.retention_s is None:
            return

        expired = [
            signature for signature, block_time in self._processed.items()
            if self.is_expired(block_time, now)
        ]
        for signature in expired:
            del self._processed[signature]

    def __contains__(self, signature: str) -> bool:
        return signature in self._processed

    def __len__(self) -> int:
        return len(self._processed)
