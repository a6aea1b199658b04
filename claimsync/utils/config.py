"""Configuration management for the carrier integration layer."""

import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..models.carrier import CarrierConfig
from .errors import ConfigurationError

# Environment variables that can supply carrier secrets, keyed by CarrierConfig field
_CARRIER_SECRET_ENV = {
    "api_key": "API_KEY",
    "api_secret": "API_SECRET",
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
    "access_token": "ACCESS_TOKEN",
    "refresh_token": "REFRESH_TOKEN",
    "webhook_secret": "WEBHOOK_SECRET",
}


@dataclass
class HttpConfig:
    """Outbound HTTP configuration."""
    timeout: float = 30.0


@dataclass
class RetryConfig:
    """Caller-side retry policy configuration."""
    max_attempts: int = 3
    base_delay: float = 1.0


@dataclass
class SyncConfig:
    """Batch synchronization configuration."""
    pacing_delay_ms: int = 100
    retry: RetryConfig = field(default_factory=RetryConfig)

    @property
    def pacing_delay(self) -> float:
        return self.pacing_delay_ms / 1000.0


@dataclass
class StorageConfig:
    """Claim store configuration; an empty path selects the in-memory store."""
    claims_path: str = ""


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str = ""


@dataclass
class Config:
    """Main configuration class."""
    environment: str
    http: HttpConfig
    sync: SyncConfig
    storage: StorageConfig
    logging: LoggingConfig
    carriers: Dict[str, CarrierConfig]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - APP_ENV
        - LOG_LEVEL
        - CARRIER_SYNC_PACING_MS
        - CARRIER_HTTP_TIMEOUT
        - CLAIMS_STORE_PATH
        - <CARRIER>_API_KEY, <CARRIER>_CLIENT_SECRET, ... per carrier

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings
        """
        load_dotenv()

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        return cls.from_dict(config_data, environ=os.environ)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> "Config":
        """
        Build configuration from a mapping shaped like config.yaml.

        Args:
            config_data: Parsed configuration mapping
            environ: Environment overrides (none applied when omitted)

        Returns:
            Config instance
        """
        env = environ or {}

        app_data = config_data.get("app", {}) or {}
        environment = env.get("APP_ENV", app_data.get("environment", "development"))

        http_data = config_data.get("http", {}) or {}
        http_config = HttpConfig(
            timeout=_as_float("http.timeout", env.get("CARRIER_HTTP_TIMEOUT", http_data.get("timeout", 30.0)))
        )

        sync_data = config_data.get("sync", {}) or {}
        retry_data = sync_data.get("retry", {}) or {}
        sync_config = SyncConfig(
            pacing_delay_ms=_as_int(
                "sync.pacing_delay_ms",
                env.get("CARRIER_SYNC_PACING_MS", sync_data.get("pacing_delay_ms", 100))
            ),
            retry=RetryConfig(
                max_attempts=_as_int("sync.retry.max_attempts", retry_data.get("max_attempts", 3)),
                base_delay=_as_float("sync.retry.base_delay", retry_data.get("base_delay", 1.0)),
            ),
        )

        storage_data = config_data.get("storage", {}) or {}
        storage_config = StorageConfig(
            claims_path=env.get("CLAIMS_STORE_PATH", storage_data.get("claims_path", "")) or ""
        )

        logging_data = config_data.get("logging", {}) or {}
        logging_config = LoggingConfig(
            level=env.get("LOG_LEVEL", logging_data.get("level", "INFO")),
            format=logging_data.get("format", LoggingConfig.format),
            file=logging_data.get("file", "") or "",
        )

        carriers: Dict[str, CarrierConfig] = {}
        for code, carrier_data in (config_data.get("carriers", {}) or {}).items():
            carrier_data = dict(carrier_data or {})
            prefix = code.upper().replace("-", "_")
            for field_name, suffix in _CARRIER_SECRET_ENV.items():
                override = env.get(f"{prefix}_{suffix}")
                if override:
                    carrier_data[field_name] = override
            carriers[code] = CarrierConfig.from_dict(code, carrier_data)

        return cls(
            environment=environment,
            http=http_config,
            sync=sync_config,
            storage=storage_config,
            logging=logging_config,
            carriers=carriers,
        )


def _as_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError.invalid(key, value, e) from e


def _as_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError.invalid(key, value, e) from e
