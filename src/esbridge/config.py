"""Configuration management for esbridge."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .errors import ConfigError

DEFAULT_URL = "http://localhost:9200"


class ClientConfig(BaseModel):
    """Search server connection configuration."""
    hosts: List[str] = Field(default_factory=lambda: [DEFAULT_URL])
    connect_timeout: float = 10.0  # Dial timeout in seconds
    request_timeout: float = 30.0  # Read timeout per request
    verify_certs: bool = True
    ca_cert: Optional[Path] = None  # PEM bundle; overrides verify_certs when set
    v7_compatible: bool = False  # Force JSON content type, fake product header
    pool_maxsize: int = 100
    scripts: Dict[str, str] = Field(default_factory=dict)  # stored script id -> painless source

    @field_validator("hosts")
    @classmethod
    def _require_hosts(cls, hosts: List[str]) -> List[str]:
        hosts = [h.rstrip("/") for h in hosts if h and h.strip()]
        if not hosts:
            raise ValueError("no search server address provided")
        return hosts

    @property
    def url(self) -> str:
        """Base URL requests are sent to (first configured host)."""
        return self.hosts[0]

    @property
    def timeout(self):
        """(connect, read) tuple in the form requests expects."""
        return (self.connect_timeout, self.request_timeout)

    def verify(self) -> Union[bool, str]:
        """Value for requests' verify= argument.

        Raises:
            ConfigError: If ca_cert is set but missing
        """
        if self.ca_cert is not None:
            if not self.ca_cert.exists():
                raise ConfigError(f"CA certificate not found: {self.ca_cert}")
            return str(self.ca_cert)
        return self.verify_certs


def load_config(config_path: Path) -> ClientConfig:
    """Load and validate configuration file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ClientConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If config file is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    try:
        return ClientConfig(**data)
    except ValueError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e


def save_config(config: ClientConfig, config_path: Path):
    """Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Path to save YAML file
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(config.model_dump(mode='json'), f, default_flow_style=False)


def config_from_env(environ: Optional[Dict[str, str]] = None) -> ClientConfig:
    """Build configuration from ESBRIDGE_* environment variables.

    Recognized variables:
        ESBRIDGE_URL: Comma-separated server URLs
        ESBRIDGE_TIMEOUT: Read timeout in seconds
        ESBRIDGE_CA_CERT: Path to a PEM CA bundle
        ESBRIDGE_VERIFY: "false" to skip certificate verification
        ESBRIDGE_V7_COMPATIBLE: "true" for 7.x servers
    """
    env = os.environ if environ is None else environ
    data: Dict[str, object] = {}

    if env.get("ESBRIDGE_URL"):
        data["hosts"] = env["ESBRIDGE_URL"].split(",")
    if env.get("ESBRIDGE_TIMEOUT"):
        data["request_timeout"] = env["ESBRIDGE_TIMEOUT"]
    if env.get("ESBRIDGE_CA_CERT"):
        data["ca_cert"] = env["ESBRIDGE_CA_CERT"]
    if env.get("ESBRIDGE_VERIFY"):
        data["verify_certs"] = env["ESBRIDGE_VERIFY"].lower() not in ("false", "0", "no", "off")
    if env.get("ESBRIDGE_V7_COMPATIBLE"):
        data["v7_compatible"] = env["ESBRIDGE_V7_COMPATIBLE"].lower() in ("true", "1", "yes", "on")

    try:
        return ClientConfig(**data)
    except ValueError as e:
        raise ConfigError(f"Invalid ESBRIDGE_* environment: {e}") from e
