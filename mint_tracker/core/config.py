"""
Configuration Manager for the Mint Tracker
Loads configuration from YAML files with environment variable support
"""

import math
import os
import re
import yaml
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from pathlib import Path

from solders.pubkey import Pubkey


DEFAULT_RELEVANCE_MARKERS = [
    "Program log: Create",
    "Program log: Instruction: MintToCollectionV1",
]

# getSignaturesForAddress rejects limits above this
MAX_PAGE_LIMIT = 1000


@dataclass(frozen=True)
class RPCConfig:
    """RPC endpoint configuration"""
    url: str
    commitment: str = "confirmed"
    timeout_s: Optional[float] = None
    max_supported_transaction_version: int = 0


@dataclass(frozen=True)
class CollectorConfig:
    """Signature collector configuration"""
    page_limit: int = MAX_PAGE_LIMIT


@dataclass(frozen=True)
class ClassifierConfig:
    """Transaction classifier configuration"""
    batch_size: int = 300
    relevance_filter: bool = False
    relevance_markers: List[str] = field(
        default_factory=lambda: list(DEFAULT_RELEVANCE_MARKERS)
    )


@dataclass(frozen=True)
class OutputConfig:
    """Report output configuration"""
    csv_path: str = "transactions.csv"
    show_progress: bool = True


@dataclass(frozen=True)
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "console"
    output_file: Optional[str] = None


@dataclass(frozen=True)
class TrackerConfig:
    """Complete tracker configuration, constructed once and read-only"""
    rpc_config: RPCConfig
    candy_machine_address: str
    bot_addresses: Dict[str, str]
    start_time: int
    end_time: int
    collector_config: CollectorConfig = field(default_factory=CollectorConfig)
    classifier_config: ClassifierConfig = field(default_factory=ClassifierConfig)
    output_config: OutputConfig = field(default_factory=OutputConfig)
    log_config: LogConfig = field(default_factory=LogConfig)


def parse_timestamp(value: Any, name: str, round_up: bool = False) -> int:
    """
    Convert a configured window bound to unix seconds

    Accepts integers, numeric strings, ISO-8601 strings and the datetime
    objects PyYAML produces for unquoted timestamps. Naive datetimes are UTC.
    Fractional bounds are rounded inward: up for a start bound (round_up),
    down for an end bound.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a unix timestamp or ISO-8601 datetime")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r'-?\d+', text):
            return int(text)
        try:
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"{name} is not a valid timestamp: {value!r}")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.timestamp()
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{name} is not a valid timestamp: {value!r}")
        return math.ceil(value) if round_up else math.floor(value)
    raise ValueError(f"{name} must be a unix timestamp or ISO-8601 datetime")


def validate_address(address: Any, name: str) -> str:
    """Check that an address parses as a base58 public key"""
    if not isinstance(address, str) or not address:
        raise ValueError(f"{name} must be a non-empty base58 address")
    try:
        Pubkey.from_string(address)
    except (ValueError, TypeError):
        raise ValueError(f"{name} is not a valid public key: {address}")
    return address


def _section(config: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Optional mapping section; absent or null means defaults"""
    data = config.get(key)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{key} must be a mapping")
    return data


def _int_setting(data: Dict[str, Any], key: str, default: int, name: str) -> int:
    value = data.get(key, default)
    # ${VAR} substitution yields strings
    if isinstance(value, str) and re.fullmatch(r'-?\d+', value.strip()):
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def _bool_setting(data: Dict[str, Any], key: str, default: bool, name: str) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return value


def _str_setting(data: Dict[str, Any], key: str, default: Optional[str], name: str) -> Optional[str]:
    value = data.get(key, default)
    if value is None and default is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {value!r}")
    return value


class ConfigurationManager:
    """Manages tracker configuration from YAML files and environment variables"""

    def __init__(self, config_path: str):
        """
        Initialize configuration manager

        Args:
            config_path: Path to YAML (or JSON) configuration file
        """
        self.config_path = Path(config_path)
        self._config_data: Optional[Dict[str, Any]] = None
        self._tracker_config: Optional[TrackerConfig] = None

    def load_config(self) -> TrackerConfig:
        """
        Load and validate configuration from file

        Returns:
            TrackerConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration must be a mapping: {self.config_path}")

        self._config_data = self._substitute_env_vars(raw_config)
        self._tracker_config = self._parse_config(self._config_data)

        return self._tracker_config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Dot-notation key (e.g., "classifier.batch_size")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self._config_data is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")

        value = self._config_data
        for k in key.split('.'):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def _substitute_env_vars(self, config: Any) -> Any:
        """
        Recursively substitute environment variables in config

        Environment variables are specified as ${VAR_NAME}, either as the
        whole value or embedded in a longer string.
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

            return re.sub(r'\$\{([^}]+)\}', replace_var, config)
        else:
            return config

    @staticmethod
    def _first(config: Dict[str, Any], *keys: str) -> Any:
        """Return the first present value among alias keys"""
        for key in keys:
            if config.get(key) is not None:
                return config[key]
        return None

    def _parse_config(self, config: Dict[str, Any]) -> TrackerConfig:
        """
        Parse raw configuration into typed objects

        Both the sectioned YAML layout and the flat legacy config.json keys
        (rpc, address, candyMachineAddress, startTime, endTime) are accepted.

        Raises:
            ValueError: If configuration is invalid
        """
        # RPC
        if isinstance(config.get('rpc'), str):
            rpc_data = {'url': config['rpc']}
        else:
            rpc_data = _section(config, 'rpc')
        url = rpc_data.get('url') or config.get('rpc_endpoint')
        if not url:
            raise ValueError("No RPC endpoint configured")
        if not isinstance(url, str):
            raise ValueError(f"rpc.url must be a string, got {url!r}")

        timeout_s = rpc_data.get('timeout_s')
        if timeout_s is not None and (isinstance(timeout_s, bool) or not isinstance(timeout_s, (int, float))):
            raise ValueError(f"rpc.timeout_s must be a number of seconds, got {timeout_s!r}")
        rpc_config = RPCConfig(
            url=url,
            commitment=_str_setting(rpc_data, 'commitment', 'confirmed', "rpc.commitment"),
            timeout_s=float(timeout_s) if timeout_s is not None else None,
            max_supported_transaction_version=_int_setting(
                rpc_data, 'max_supported_transaction_version', 0, "rpc.max_supported_transaction_version"
            )
        )

        # Target and bot table
        candy_machine = self._first(config, 'candy_machine_address', 'candyMachineAddress')
        if candy_machine is None:
            raise ValueError("No candy machine address configured")
        candy_machine = validate_address(candy_machine, "candy_machine_address")

        bots_data = self._first(config, 'bot_addresses', 'address')
        if not isinstance(bots_data, dict) or not bots_data:
            raise ValueError("No bot addresses configured")

        bot_addresses: Dict[str, str] = {}
        seen: Dict[str, str] = {}
        for name, address in bots_data.items():
            name = str(name)
            validate_address(address, f"bot_addresses.{name}")
            if address in seen:
                raise ValueError(
                    f"Bot address {address} assigned to both {seen[address]} and {name}"
                )
            seen[address] = name
            bot_addresses[name] = address

        # Time window
        start_raw = self._first(config, 'start_time', 'startTime')
        end_raw = self._first(config, 'end_time', 'endTime')
        if start_raw is None or end_raw is None:
            raise ValueError("Both start_time and end_time must be configured")
        start_time = parse_timestamp(start_raw, "start_time", round_up=True)
        end_time = parse_timestamp(end_raw, "end_time")
        if start_time > end_time:
            raise ValueError(
                f"start_time ({start_time}) is after end_time ({end_time})"
            )

        # Collector
        collector_data = _section(config, 'collector')
        page_limit = _int_setting(collector_data, 'page_limit', MAX_PAGE_LIMIT, "collector.page_limit")
        if not 1 <= page_limit <= MAX_PAGE_LIMIT:
            raise ValueError(f"collector.page_limit must be between 1 and {MAX_PAGE_LIMIT}")
        collector_config = CollectorConfig(page_limit=page_limit)

        # Classifier
        classifier_data = _section(config, 'classifier')
        batch_size = _int_setting(classifier_data, 'batch_size', 300, "classifier.batch_size")
        if batch_size < 1:
            raise ValueError("classifier.batch_size must be at least 1")
        markers = classifier_data.get('relevance_markers', DEFAULT_RELEVANCE_MARKERS)
        if isinstance(markers, str):
            markers = [markers]
        if not isinstance(markers, list) or not all(isinstance(m, str) for m in markers):
            raise ValueError(f"classifier.relevance_markers must be a list of strings, got {markers!r}")
        classifier_config = ClassifierConfig(
            batch_size=batch_size,
            relevance_filter=_bool_setting(
                classifier_data, 'relevance_filter', False, "classifier.relevance_filter"
            ),
            relevance_markers=list(markers)
        )

        # Output
        output_data = _section(config, 'output')
        output_config = OutputConfig(
            csv_path=_str_setting(output_data, 'csv_path', 'transactions.csv', "output.csv_path"),
            show_progress=_bool_setting(output_data, 'show_progress', True, "output.show_progress")
        )

        # Logging
        log_data = _section(config, 'logging')
        log_config = LogConfig(
            level=_str_setting(log_data, 'level', 'INFO', "logging.level"),
            format=_str_setting(log_data, 'format', 'console', "logging.format"),
            output_file=_str_setting(log_data, 'output_file', None, "logging.output_file")
        )

        return TrackerConfig(
            rpc_config=rpc_config,
            candy_machine_address=candy_machine,
            bot_addresses=bot_addresses,
            start_time=start_time,
            end_time=end_time,
            collector_config=collector_config,
            classifier_config=classifier_config,
            output_config=output_config,
            log_config=log_config
        )
