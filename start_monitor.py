#!/usr/bin/env python3
"""
Launch Monitor - entry point

Polls pump.fun over Solana RPC and logs every confirmed token launch.
"""

import argparse
import asyncio
import signal
import sys

from launch_monitor.clients.rpc_client import SolanaRPCClient
from launch_monitor.core.config import AppConfig, ConfigurationManager
from launch_monitor.core.logger import get_logger, setup_logging
from launch_monitor.core.metrics import get_metrics
from launch_monitor.core.models import ConfirmedLaunchEvent
from launch_monitor.core.monitor import TokenMonitor


logger = get_logger("launch_monitor")


class MonitorApp:
    """Wires config, RPC client and monitor together"""

    def __init__(self, config: AppConfig):
        self.config = config
        self.metrics = get_metrics()
        self.rpc = SolanaRPCClient(
            endpoint=config.rpc_config.endpoint,
            timeout_s=config.rpc_config.timeout_s,
            max_concurrent=config.rpc_config.max_concurrent,
            headers=config.rpc_config.headers
        )
        self.monitor = TokenMonitor(
            signature_source=self.rpc,
            transaction_fetcher=self.rpc,
            config=config.monitor_config,
            metrics=self.metrics
        )
        self.monitor.register_listener(self._on_launch)
        self._stop_event = asyncio.Event()

    def _on_launch(self, event: ConfirmedLaunchEvent) -> None:
        logger.info(
            "new_token_detected",
            mint=event.identity,
            total_sol=round(event.accumulated_amount, 4),
            transactions=event.transaction_count,
            source=event.source
        )

    def request_stop(self) -> None:
        logger.info("shutdown_signal_received")
        self._stop_event.set()

    async def _status_loop(self) -> None:
        interval = self.config.metrics_config.log_interval_s
        while True:
            await asyncio.sleep(interval)
            logger.info("monitor_status", **self.metrics.snapshot())

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                # Windows: fall back to KeyboardInterrupt
                pass

        status_task = None
        await self.rpc.start()
        try:
            await self.monitor.start()
            if self.config.metrics_config.enabled:
                status_task = asyncio.create_task(self._status_loop())
            await self._stop_event.wait()
        finally:
            if status_task:
                status_task.cancel()
                await asyncio.gather(status_task, return_exceptions=True)
            await self.monitor.stop()
            await self.rpc.stop()
            logger.info("launch_monitor_exited", **self.metrics.snapshot()["counters"])


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Pump.fun token launch monitor')
    parser.add_argument('--config', default='config/config.yml', help='Path to YAML config')
    parser.add_argument('--log-level', help='Override logging.level from the config')
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    try:
        config = ConfigurationManager(args.config).load_config()
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    log_config = config.log_config
    setup_logging(
        level=args.log_level or log_config.level,
        format=log_config.format,
        output_file=log_config.output_file
    )
    logger.info("using_rpc", endpoint=config.rpc_config.endpoint)

    app = MonitorApp(config)
    try:
        await app.run()
    except KeyboardInterrupt:
        pass
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
