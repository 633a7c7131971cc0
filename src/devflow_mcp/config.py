"""
Server configuration for devflow-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (devflow-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- DEVFLOW_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- DEVFLOW_MCP_STRUCTURED_LOGGING: JSON log lines instead of text (true/false)
- DEVFLOW_MCP_SERVER_NAME: Name advertised to MCP clients
- DEVFLOW_MCP_METRICS_ENABLED: Emit tool metrics (true/false)
- DEVFLOW_MCP_AUDIT_ENABLED: Emit audit records (true/false)
- DEVFLOW_MCP_RANDOM_SEED: Integer seed for simulated quality scores
- DEVFLOW_MCP_CONFIG_FILE: Path to TOML config file
"""

import logging
import os
import random
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version as get_package_version
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from devflow_mcp.core.logging_config import configure_logging


logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("devflow-mcp")
    except PackageNotFoundError:
        return "0.1.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_seed(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer random seed: %r", value)
        return None


@dataclass
class GenerationConfig:
    """Settings for the simulated generation and scoring steps.

    Attributes:
        random_seed: Seed for the RNG behind smart_finish scores (None = nondeterministic)
        max_execution_ms: Soft budget for one orchestration run; slower runs are
            logged and reflected in performanceScore
    """

    random_seed: Optional[int] = None
    max_execution_ms: int = 500

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "GenerationConfig":
        """Create config from the ``[generation]`` TOML section."""
        return cls(
            random_seed=_parse_seed(data.get("random_seed")),
            max_execution_ms=int(data.get("max_execution_ms", 500)),
        )


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "devflow-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    # Observability configuration
    metrics_enabled: bool = True
    audit_enabled: bool = True

    # Generation configuration
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("DEVFLOW_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["devflow-mcp.toml", ".devflow-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()

        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning("Config file not found: %s", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if "logging" in data:
                log = data["logging"]
                if "level" in log:
                    self.log_level = str(log["level"]).upper()
                if "structured" in log:
                    self.structured_logging = _parse_bool(log["structured"])

            if "server" in data:
                srv = data["server"]
                if "name" in srv:
                    self.server_name = str(srv["name"])
                if "version" in srv:
                    self.server_version = str(srv["version"])

            if "observability" in data:
                obs = data["observability"]
                if "metrics_enabled" in obs:
                    self.metrics_enabled = _parse_bool(obs["metrics_enabled"])
                if "audit_enabled" in obs:
                    self.audit_enabled = _parse_bool(obs["audit_enabled"])

            if "generation" in data:
                self.generation = GenerationConfig.from_toml_dict(data["generation"])

        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.error("Error loading config file %s: %s", path, e)

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("DEVFLOW_MCP_LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get("DEVFLOW_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        if name := os.environ.get("DEVFLOW_MCP_SERVER_NAME"):
            self.server_name = name

        if metrics := os.environ.get("DEVFLOW_MCP_METRICS_ENABLED"):
            self.metrics_enabled = _parse_bool(metrics)

        if audit := os.environ.get("DEVFLOW_MCP_AUDIT_ENABLED"):
            self.audit_enabled = _parse_bool(audit)

        if seed := os.environ.get("DEVFLOW_MCP_RANDOM_SEED"):
            self.generation.random_seed = _parse_seed(seed)

    def get_rng(self) -> random.Random:
        """Return a fresh RNG seeded from ``generation.random_seed``."""
        return random.Random(self.generation.random_seed)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(
            level=self.log_level,
            format="structured" if self.structured_logging else "human",
        )


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
