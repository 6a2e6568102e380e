"""
Planner settings.

Thresholds and endpoints the recommender uses, loaded from a YAML file
and overridden by ``KASPA_PLANNER_*`` environment variables (a ``.env``
file in the working directory is honoured through python-dotenv).

Lookup order for the YAML file:
1. the ``path`` argument
2. ``$KASPA_PLANNER_CONFIG``
3. ``~/.kaspa-planner/planner.yaml``
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv

from kaspa_planner.errors import SettingsError

logger = logging.getLogger(__name__)

ENV_PREFIX = "KASPA_PLANNER_"
CONFIG_ENV_VAR = "KASPA_PLANNER_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".kaspa-planner" / "planner.yaml"


@dataclass(frozen=True)
class PlannerSettings:
    """Tunable thresholds (GB) and endpoints for recommendation."""

    optimal_headroom: float = 1.25
    minimal_ram_gb: float = 2.0
    abundant_ram_gb: float = 16.0
    low_disk_gb: float = 100.0
    docker_limit_ratio: float = 0.8
    remote_node_url: str = "https://api.kaspa.org"
    local_rpc_server: str = "kaspa-node:16110"
    catalog_path: str | None = None

    def __post_init__(self):
        if self.optimal_headroom < 1:
            raise SettingsError("optimal_headroom must be >= 1")
        if self.minimal_ram_gb < 0:
            raise SettingsError("minimal_ram_gb must be non-negative")
        if self.abundant_ram_gb < self.minimal_ram_gb:
            raise SettingsError("abundant_ram_gb must be >= minimal_ram_gb")
        if self.low_disk_gb < 0:
            raise SettingsError("low_disk_gb must be non-negative")
        if not 0 < self.docker_limit_ratio <= 1:
            raise SettingsError("docker_limit_ratio must be in (0, 1]")
        if not self.remote_node_url:
            raise SettingsError("remote_node_url must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlannerSettings":
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(unknown)}")

        values = {}
        for name, value in data.items():
            default = known[name].default
            if value is None:
                continue
            if isinstance(default, str) or default is None:
                values[name] = value
                continue
            try:
                values[name] = float(value)
            except (TypeError, ValueError):
                raise SettingsError(f"Setting '{name}' must be a number, got {value!r}") from None
        return cls(**values)


def _env_overrides() -> dict[str, str]:
    overrides = {}
    for f in fields(PlannerSettings):
        env_key = ENV_PREFIX + f.name.upper()
        if env_key in os.environ:
            overrides[f.name] = os.environ[env_key]
    return overrides


def load_settings(path: str | Path | None = None) -> PlannerSettings:
    """
    Load planner settings from YAML plus environment overrides.

    Args:
        path: Explicit settings file. A missing explicit file is an error;
            a missing default file just means built-in defaults.

    Returns:
        Validated PlannerSettings.
    """
    load_dotenv(find_dotenv(usecwd=True))

    explicit = path is not None or CONFIG_ENV_VAR in os.environ
    config_path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)

    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"{config_path} must contain a mapping")
        logger.debug("Loaded planner settings from %s", config_path)
    elif explicit:
        raise SettingsError(f"Settings file not found: {config_path}")

    data.update(_env_overrides())
    return PlannerSettings.from_dict(data)
