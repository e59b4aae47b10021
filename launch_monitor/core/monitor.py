"""
Pump.fun token launch monitor

Two independent asyncio tasks share one tracker:
- poll task: signatures -> dedup/time filter -> fetch -> extract -> track
- scan task: confirm tracked tokens and publish launch events

Both run on the same event loop, so the tracker and the processed-signature
set are never mutated concurrently. Each task sleeps only after its tick
finishes, so a slow RPC never causes overlapping ticks.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from launch_monitor.core.config import MonitorConfig
from launch_monitor.core.dedup import SignatureFilter
from launch_monitor.core.event_bus import EventBus, LaunchListener
from launch_monitor.core.extraction import ExtractionEngine
from launch_monitor.core.logger import Logger, get_logger
from launch_monitor.core.metrics import LatencyTimer, MetricsCollector, get_metrics
from launch_monitor.core.models import (
    ConfirmedLaunchEvent,
    SignatureInfo,
    SignatureSource,
    TransactionFetcher,
)
from launch_monitor.core.tracker import TokenTracker


class TokenMonitor:
    """Detects new pump.fun tokens and emits one launch event per confirmed mint"""

    def __init__(
        self,
        signature_source: SignatureSource,
        transaction_fetcher: TransactionFetcher,
        config: Optional[MonitorConfig] = None,
        logger: Optional[Logger] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
        extraction_engine: Optional[ExtractionEngine] = None
    ):
        """
        Args:
            signature_source: Lists recent signatures for the program
            transaction_fetcher: Fetches parsed transactions by signature
            config: Detection parameters
            logger: Logger for the monitor and its components
            metrics: Metrics collector, defaults to the global one
            clock: Time source in epoch seconds
            extraction_engine: Override the default pump.fun extraction
        """
        self.signature_source = signature_source
        self.transaction_fetcher = transaction_fetcher
        self.config = config or MonitorConfig()
        self.config.validate()
        self.logger = logger or get_logger(__name__)
        self.metrics = metrics or get_metrics()
        self.clock = clock

        self.extraction = extraction_engine or ExtractionEngine(
            program_id=self.config.program_id,
            noise_floor_sol=self.config.noise_floor_sol,
            nominal_amount_sol=self.config.nominal_amount_sol,
            logger=self.logger
        )
        self.tracker = TokenTracker(
            min_value_to_track=self.config.min_value_to_track,
            confirmation_delay_ms=self.config.confirmation_delay_ms,
            min_transactions=self.config.min_transactions,
            source=self.config.source_label,
            clock=clock,
            logger=self.logger
        )
        self.signature_filter = SignatureFilter(
            retention_s=self.config.dedup_retention_s,
            clock=clock,
            logger=self.logger
        )
        self.event_bus = EventBus(logger=self.logger, metrics=self.metrics)

        self._running = False
        self._poll_task: Optional[asyncio.Task] = None
        self._scan_task: Optional[asyncio.Task] = None

    # Public API

    def register_listener(self, listener: LaunchListener) -> None:
        """Add a callback receiving every ConfirmedLaunchEvent"""
        self.event_bus.register(listener)

    on_new_token = register_listener

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def start_time(self) -> float:
        return self.signature_filter.start_time

    @property
    def tracked_count(self) -> int:
        return len(self.tracker)

    @property
    def processed_count(self) -> int:
        return len(self.signature_filter)

    async def start(self) -> None:
        """Start the poll and scan tasks. Calling it while running only warns."""
        if self._running:
            self.logger.warning("monitor_already_running")
            return

        self._running = True
        self.signature_filter.reset(self.clock())
        self.tracker.clear()

        self.logger.info(
            "monitor_starting",
            program=self.config.program_id,
            min_sol=self.config.min_value_to_track,
            confirmation_delay_ms=self.config.confirmation_delay_ms,
            poll_interval_ms=self.config.poll_interval_ms
        )
        self.logger.info(
            "processing_transactions_after",
            cutoff=datetime.fromtimestamp(self.start_time, tz=timezone.utc).isoformat()
        )

        self._poll_task = asyncio.create_task(
            self._run_periodic(self.poll_once, self.config.poll_interval_ms, "poll"),
            name="launch-monitor-poll"
        )
        self._scan_task = asyncio.create_task(
            self._run_periodic(self._scan_tick, self.config.scan_interval_ms, "scan"),
            name="launch-monitor-scan"
        )

    async def stop(self) -> None:
        """Cancel both tasks and wait for them to finish. Safe to call twice."""
        if not self._running:
            return

        self._running = False

        tasks = [t for t in (self._poll_task, self._scan_task) if t is not None]
        self._poll_task = None
        self._scan_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.event_bus.close()

        self.logger.info(
            "monitor_stopped",
            tracked=len(self.tracker),
            processed=len(self.signature_filter)
        )

    # Ticks

    async def poll_once(self) -> int:
        """
        One poll tick

        Returns:
            Number of signatures handed to extraction
        """
        try:
            with LatencyTimer(self.metrics, "rpc_get_signatures"):
                signatures = await self.signature_source.get_signatures_for_address(
                    self.config.program_id,
                    self.config.signature_limit
                )
        except Exception as e:
            self.logger.error("signature_fetch_failed", error=str(e))
            self.metrics.increment("signature_fetch_errors")
            return 0

        self.metrics.increment("signatures_seen", len(signatures))
        fresh = self.signature_filter.filter(signatures)
        self.metrics.set_gauge("processed_signatures", len(self.signature_filter))

        for info in fresh:
            await self._process_signature(info)

        if fresh:
            self.logger.debug("poll_processed", new=len(fresh), returned=len(signatures))

        return len(fresh)

    def scan_once(self) -> List[ConfirmedLaunchEvent]:
        """
        One scan tick: confirm ready tokens and publish their events

        Returns:
            Events published by this tick
        """
        events = self.tracker.scan()
        for event in events:
            self.logger.info(
                "launch_confirmed",
                mint=event.identity,
                total_sol=round(event.accumulated_amount, 2),
                transactions=event.transaction_count,
                source=event.source
            )
            self.metrics.increment("launches_confirmed")
            self.event_bus.publish(event)

        self.metrics.set_gauge("tracked_tokens", len(self.tracker))
        return events

    async def _scan_tick(self) -> None:
        self.scan_once()

    async def _process_signature(self, info: SignatureInfo) -> None:
        signature = info.signature
        try:
            with LatencyTimer(self.metrics, "rpc_get_transaction"):
                tx = await self.transaction_fetcher.get_parsed_transaction(signature)
        except Exception as e:
            self.logger.error("transaction_fetch_failed", signature=signature[:8], error=str(e))
            self.metrics.increment("transaction_fetch_errors")
            return

        if tx is None:
            self.logger.debug("transaction_unavailable", signature=signature[:8])
            self.metrics.increment("transactions_unavailable")
            return

        if self.signature_filter.is_too_old(tx.block_time):
            self.logger.debug("skipping_old_transaction", signature=signature[:8], block_time=tx.block_time)
            return

        extraction = self.extraction.extract(tx)
        if extraction.identity is None:
            self.logger.debug("mint_not_found", signature=signature[:8])
            self.metrics.increment("transactions_without_mint")
            return

        self.logger.debug(
            "mint_extracted",
            mint=extraction.identity,
            strategy=extraction.strategy,
            amount_sol=round(extraction.amount, 4)
        )

        is_new = extraction.identity not in self.tracker
        self.tracker.record(extraction.identity, signature, extraction.amount)
        if is_new:
            self.metrics.increment("tokens_tracked")

    async def _run_periodic(self, tick, interval_ms: int, name: str) -> None:
        interval = interval_ms / 1000
        while self._running:
            started = time.monotonic()
            try:
                await tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error(f"{name}_tick_failed", error=str(e), exc_info=True)

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, interval - elapsed))
