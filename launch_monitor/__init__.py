"""
Pump.fun launch monitor

Polls the pump.fun program for new transactions, infers freshly created
token mints and emits a one-time launch event once enough SOL has flowed in.
"""

from launch_monitor.core.models import ConfirmedLaunchEvent, ParsedTransaction, SignatureInfo
from launch_monitor.core.monitor import TokenMonitor

__all__ = ["TokenMonitor", "ConfirmedLaunchEvent", "ParsedTransaction", "SignatureInfo"]

__version__ = "0.1.0"
