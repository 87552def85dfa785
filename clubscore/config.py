"""Configuration loading for Clubscore discovery."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .discovery.browser import DEFAULT_TIMEOUT_MS, POLL_INTERVAL_MS, SERVICE_TYPE


@dataclass
class DiscoveryConfig:
    """Configuration for browsing for the LAN core."""

    service_type: str = SERVICE_TYPE
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    poll_interval_ms: int = POLL_INTERVAL_MS
    resolve_timeout_ms: int = 1000  # SRV/A lookup after a name is seen


@dataclass
class AnnounceConfig:
    """Configuration for advertising a LAN core instance."""

    name: str = "clubscore-lan"
    port: int = 7310
    address: str | None = None  # None: whatever the hostname resolves to
    properties: dict[str, str] = field(
        default_factory=lambda: {
            "api": "true",
            "path": "/api/discovery",
            "version": "v1",
        }
    )


@dataclass
class ProbeConfig:
    """Configuration for querying a discovered server over HTTP."""

    path: str = "/api/discovery"
    timeout_seconds: float = 2.5


@dataclass
class Config:
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    announce: AnnounceConfig = field(default_factory=AnnounceConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with CLUBSCORE_ prefix."""
    return os.environ.get(f"CLUBSCORE_{key}", default)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Discovery overrides
    if service_type := _get_env("SERVICE_TYPE"):
        config.discovery.service_type = service_type
    if timeout_ms := _get_env("DISCOVERY_TIMEOUT_MS"):
        config.discovery.timeout_ms = int(timeout_ms)
    if poll_interval := _get_env("POLL_INTERVAL_MS"):
        config.discovery.poll_interval_ms = int(poll_interval)

    # Announce overrides
    if name := _get_env("ANNOUNCE_NAME"):
        config.announce.name = name
    if port := _get_env("ANNOUNCE_PORT"):
        config.announce.port = int(port)
    if address := _get_env("ANNOUNCE_ADDRESS"):
        config.announce.address = address

    # Probe overrides
    if probe_timeout := _get_env("PROBE_TIMEOUT"):
        config.probe.timeout_seconds = float(probe_timeout)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None or missing, defaults
            are used.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse discovery config
            if "discovery" in data:
                disc_data = data["discovery"]
                config.discovery = DiscoveryConfig(
                    service_type=disc_data.get(
                        "service_type", config.discovery.service_type
                    ),
                    timeout_ms=disc_data.get("timeout_ms", config.discovery.timeout_ms),
                    poll_interval_ms=disc_data.get(
                        "poll_interval_ms", config.discovery.poll_interval_ms
                    ),
                    resolve_timeout_ms=disc_data.get(
                        "resolve_timeout_ms", config.discovery.resolve_timeout_ms
                    ),
                )

            # Parse announce config
            if "announce" in data:
                ann_data = data["announce"]
                properties = ann_data.get("properties", config.announce.properties)
                config.announce = AnnounceConfig(
                    name=ann_data.get("name", config.announce.name),
                    port=ann_data.get("port", config.announce.port),
                    address=ann_data.get("address"),
                    properties={str(k): str(v) for k, v in properties.items()},
                )

            # Parse probe config
            if "probe" in data:
                probe_data = data["probe"]
                config.probe = ProbeConfig(
                    path=probe_data.get("path", config.probe.path),
                    timeout_seconds=probe_data.get(
                        "timeout_seconds", config.probe.timeout_seconds
                    ),
                )

    # Apply environment variable overrides
    return _apply_env_overrides(config)
