"""
Installation-state record written by the installer.

Only ``configuration.network`` is consulted by the planner (as the
previous network for network-change detection); the rest is parsed so
the CLI can show it.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kaspa_planner.fields import DEFAULT_NETWORK, NETWORK_FIELD

logger = logging.getLogger(__name__)


@dataclass
class ServiceState:
    name: str
    display_name: str = ""
    profile: str = ""
    running: bool = False
    exists: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServiceState":
        return cls(
            name=data.get("name", ""),
            display_name=data.get("displayName", data.get("display_name", "")),
            profile=data.get("profile", ""),
            running=bool(data.get("running", False)),
            exists=bool(data.get("exists", False)),
        )


@dataclass
class InstallationState:
    version: str = ""
    installed_at: str = ""
    last_modified: str = ""
    phase: str = "installing"
    profiles: list[str] = field(default_factory=list)
    configuration: dict[str, Any] = field(default_factory=dict)
    services: list[ServiceState] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def network(self) -> str:
        return self.configuration.get("network") or DEFAULT_NETWORK

    def previous_config(self) -> dict[str, str]:
        """The slice of the installed configuration the validator compares against."""
        return {NETWORK_FIELD: self.network}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InstallationState":
        profiles = data.get("profiles") or {}
        selected = profiles.get("selected", []) if isinstance(profiles, dict) else profiles
        return cls(
            version=str(data.get("version", "")),
            installed_at=data.get("installedAt", ""),
            last_modified=data.get("lastModified", ""),
            phase=data.get("phase", "installing"),
            profiles=list(selected),
            configuration=dict(data.get("configuration") or {}),
            services=[ServiceState.from_dict(s) for s in data.get("services") or []],
            summary=dict(data.get("summary") or {}),
        )

    @classmethod
    def load(cls, path: str | Path) -> "InstallationState | None":
        """Read a state file; returns None when it is missing or unreadable."""
        path = Path(path)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read installation state %s: %s", path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Installation state %s is not a JSON object", path)
            return None
        return cls.from_dict(data)
