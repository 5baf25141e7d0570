"""Configuration for the certificate service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Environment variable naming the config file to load
CONFIG_ENV_VAR = "CERTIFICATE_SVC_CONFIG"


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8060
    reload: bool = False
    log_level: str = "INFO"


@dataclass
class WorkflowConfig:
    """Certificate workflow configuration."""
    enabled: bool = True

    # YAML file holding the requests (None = in-memory only)
    requests_file: str | None = "requests.yaml"


@dataclass
class TelemetryConfig:
    """Audit telemetry configuration."""
    enabled: bool = True
    sink_type: str = "console"  # console | file
    sink_config: dict[str, Any] = field(default_factory=dict)

    # Queue
    max_queue_size: int = 10000


@dataclass
class Config:
    """Main configuration container."""
    project_name: str = "Parish Certificates"
    server: ServerConfig = field(default_factory=ServerConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from dictionary."""
        return cls(
            project_name=data.get("project_name", "Parish Certificates"),
            server=ServerConfig(**data.get("server", {})),
            workflow=WorkflowConfig(**data.get("workflow", {})),
            telemetry=TelemetryConfig(**data.get("telemetry", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


def load_config(path: str | None = None) -> Config:
    """
    Load configuration.

    Looks at ``path``, then the file named by CERTIFICATE_SVC_CONFIG, then
    ``config.yaml`` in the working directory. Falls back to defaults.
    """
    candidate = path or os.environ.get(CONFIG_ENV_VAR)
    if candidate is None and Path("config.yaml").exists():
        candidate = "config.yaml"

    if candidate is None:
        logger.info("No config file found, using defaults")
        return Config()

    logger.info(f"Loading config from {candidate}")
    if candidate.endswith(".json"):
        return Config.from_json(candidate)
    return Config.from_yaml(candidate)
