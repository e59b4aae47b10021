"""
Configuration Manager for the launch monitor
Loads configuration from YAML files with environment variable support
"""

import os
import re
import yaml
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path


PUMP_FUN_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
DEFAULT_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"

_ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


@dataclass
class RPCConfig:
    """Solana HTTP RPC configuration"""
    endpoint: str = DEFAULT_RPC_ENDPOINT
    timeout_s: float = 10.0
    max_concurrent: int = 10
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class MonitorConfig:
    """Detection and tracking parameters"""
    poll_interval_ms: int = 1000
    scan_interval_ms: int = 500
    min_value_to_track: float = 5.0  # SOL
    confirmation_delay_ms: int = 2000
    min_transactions: int = 2
    signature_limit: int = 50
    program_id: str = PUMP_FUN_PROGRAM_ID
    source_label: str = "pumpfun"
    noise_floor_sol: float = 0.001
    nominal_amount_sol: float = 0.01
    dedup_retention_s: Optional[float] = None

    def validate(self) -> None:
        """
        Check value ranges

        Raises:
            ValueError: If a value is out of range
        """
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.scan_interval_ms <= 0:
            raise ValueError("scan_interval_ms must be positive")
        if self.min_value_to_track < 0:
            raise ValueError("min_value_to_track must be >= 0")
        if self.confirmation_delay_ms < 0:
            raise ValueError("confirmation_delay_ms must be >= 0")
        if self.min_transactions < 1:
            raise ValueError("min_transactions must be >= 1")
        if not 1 <= self.signature_limit <= 1000:
            raise ValueError("signature_limit must be between 1 and 1000")
        if self.dedup_retention_s is not None and self.dedup_retention_s <= 0:
            raise ValueError("dedup_retention_s must be positive when set")


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "console"
    output_file: Optional[str] = None


@dataclass
class MetricsConfig:
    """Metrics configuration"""
    enabled: bool = True
    log_interval_s: int = 60


@dataclass
class AppConfig:
    """Complete monitor configuration"""
    rpc_config: RPCConfig
    monitor_config: MonitorConfig
    log_config: LogConfig
    metrics_config: MetricsConfig


class ConfigurationManager:
    """Manages monitor configuration from YAML files and environment variables"""

    def __init__(self, config_path: str):
        """
        Initialize configuration manager

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = Path(config_path)
        self._config_data: Optional[Dict[str, Any]] = None
        self._app_config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """
        Load and validate configuration from file

        Returns:
            AppConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        self._config_data = self._substitute_env_vars(raw_config)
        self._app_config = self._parse_config(self._config_data)

        return self._app_config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Dot-notation key (e.g., "monitor.min_value_to_track")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self._config_data is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")

        value = self._config_data
        for k in key.split('.'):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default

        return value

    def _substitute_env_vars(self, config: Any) -> Any:
        """
        Recursively substitute ${VAR_NAME} references with environment values

        Supports full-value and embedded references:
        - Full: "${RPC_URL}" -> "https://..."
        - Embedded: "https://rpc.helius.xyz/?api-key=${HELIUS_KEY}"
        """
        if isinstance(config, dict):
            return {k: self._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            def replace_var(match):
                var_name = match.group(1)
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable {var_name} not found"
                    )
                return value

            return _ENV_VAR_PATTERN.sub(replace_var, config)
        else:
            return config

    def _parse_config(self, config: Dict[str, Any]) -> AppConfig:
        """
        Parse raw configuration into typed objects

        Raises:
            ValueError: If configuration is invalid
        """
        rpc_data = config.get('rpc', {}) or {}
        endpoint = rpc_data.get('endpoint')
        if not endpoint:
            raise ValueError("No RPC endpoint configured (rpc.endpoint)")

        rpc_config = RPCConfig(
            endpoint=endpoint,
            timeout_s=float(rpc_data.get('timeout_s', 10.0)),
            max_concurrent=int(rpc_data.get('max_concurrent', 10)),
            headers=dict(rpc_data.get('headers') or {})
        )

        monitor_data = config.get('monitor', {}) or {}
        defaults = MonitorConfig()
        retention = monitor_data.get('dedup_retention_s', defaults.dedup_retention_s)
        monitor_config = MonitorConfig(
            poll_interval_ms=int(monitor_data.get('poll_interval_ms', defaults.poll_interval_ms)),
            scan_interval_ms=int(monitor_data.get('scan_interval_ms', defaults.scan_interval_ms)),
            min_value_to_track=float(monitor_data.get('min_value_to_track', defaults.min_value_to_track)),
            confirmation_delay_ms=int(monitor_data.get('confirmation_delay_ms', defaults.confirmation_delay_ms)),
            min_transactions=int(monitor_data.get('min_transactions', defaults.min_transactions)),
            signature_limit=int(monitor_data.get('signature_limit', defaults.signature_limit)),
            program_id=monitor_data.get('program_id', defaults.program_id),
            source_label=monitor_data.get('source_label', defaults.source_label),
            noise_floor_sol=float(monitor_data.get('noise_floor_sol', defaults.noise_floor_sol)),
            nominal_amount_sol=float(monitor_data.get('nominal_amount_sol', defaults.nominal_amount_sol)),
            dedup_retention_s=float(retention) if retention is not None else None
        )
        monitor_config.validate()

        log_data = config.get('logging', {}) or {}
        log_config = LogConfig(
            level=log_data.get('level', 'INFO'),
            format=log_data.get('format', 'console'),
            output_file=log_data.get('output_file')
        )

        metrics_data = config.get('metrics', {}) or {}
        metrics_config = MetricsConfig(
            enabled=bool(metrics_data.get('enabled', True)),
            log_interval_s=int(metrics_data.get('log_interval_s', 60))
        )

        return AppConfig(
            rpc_config=rpc_config,
            monitor_config=monitor_config,
            log_config=log_config,
            metrics_config=metrics_config
        )
