"""
Requirement Catalog for the Kaspa All-in-One planner.

Static lookup tables: component -> resource requirement and
profile -> ordered component keys. The reverse index
(component -> owning profiles) is built once at construction so that
shared-component detection never has to scan profiles per request.

A catalog is immutable after construction. To reload catalog data,
build a new RequirementCatalog and swap the reference between requests.
"""

import functools
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from kaspa_planner.errors import SettingsError, UnknownComponent, UnknownProfile

logger = logging.getLogger(__name__)


class ComponentCategory(Enum):
    """Role a component plays in a deployment."""

    INFRA = "infra"
    NODE = "node"
    INDEXER = "indexer"
    DATABASE = "database"
    APP = "app"
    MINING = "mining"


@dataclass(frozen=True)
class Component:
    """A deployable service and its resource requirement (GB / cores)."""

    key: str
    name: str
    min_ram: float
    recommended_ram: float
    min_disk: float
    min_cpu: float
    category: ComponentCategory = ComponentCategory.INFRA
    disk_growth: bool = False
    shared_across_profiles: bool = False
    description: str = ""

    def __post_init__(self):
        if self.recommended_ram < self.min_ram:
            raise SettingsError(
                f"Component {self.key}: recommended_ram must be >= min_ram"
            )
        for attr in ("min_ram", "min_disk", "min_cpu"):
            if getattr(self, attr) < 0:
                raise SettingsError(f"Component {self.key}: {attr} must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "min_ram": self.min_ram,
            "recommended_ram": self.recommended_ram,
            "min_disk": self.min_disk,
            "min_cpu": self.min_cpu,
            "category": self.category.value,
            "disk_growth": self.disk_growth,
            "shared_across_profiles": self.shared_across_profiles,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> "Component":
        return cls(
            key=key,
            name=data.get("name", key),
            min_ram=float(data["min_ram"]),
            recommended_ram=float(data.get("recommended_ram", data["min_ram"])),
            min_disk=float(data.get("min_disk", 0)),
            min_cpu=float(data.get("min_cpu", 0)),
            category=ComponentCategory(data.get("category", "infra")),
            disk_growth=bool(data.get("disk_growth", False)),
            shared_across_profiles=bool(data.get("shared_across_profiles", False)),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class Profile:
    """A named, installable bundle of components."""

    key: str
    name: str
    components: tuple[str, ...]
    legacy_id: str | None = None
    tier: int = 0
    supports_remote_node: bool = False
    optional: bool = False
    env_defaults: MappingProxyType = field(
        hash=False, default_factory=lambda: MappingProxyType({})
    )
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "components": list(self.components),
            "legacy_id": self.legacy_id,
            "tier": self.tier,
            "supports_remote_node": self.supports_remote_node,
            "optional": self.optional,
            "env_defaults": dict(self.env_defaults),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> "Profile":
        return cls(
            key=key,
            name=data.get("name", key),
            components=tuple(data.get("components", ())),
            legacy_id=data.get("legacy_id"),
            tier=int(data.get("tier", 0)),
            supports_remote_node=bool(data.get("supports_remote_node", False)),
            optional=bool(data.get("optional", False)),
            env_defaults=MappingProxyType(
                {k: str(v) for k, v in (data.get("env_defaults") or {}).items()}
            ),
            description=data.get("description", ""),
        )


NODE_COMPONENT = "kaspa-node"

BUILTIN_COMPONENTS = (
    Component(
        key="dashboard",
        name="Dashboard",
        min_ram=0.1,
        recommended_ram=0.256,
        min_disk=0.1,
        min_cpu=0.25,
        shared_across_profiles=True,
        description="Web-based monitoring and control interface",
    ),
    Component(
        key="nginx",
        name="Nginx",
        min_ram=0.05,
        recommended_ram=0.128,
        min_disk=0.01,
        min_cpu=0.25,
        shared_across_profiles=True,
        description="Reverse proxy and SSL termination",
    ),
    Component(
        key=NODE_COMPONENT,
        name="Kaspa Node",
        min_ram=4,
        recommended_ram=8,
        min_disk=50,
        min_cpu=2,
        category=ComponentCategory.NODE,
        disk_growth=True,
        shared_across_profiles=True,
        description="Core blockchain node (sizing covers the initial sync)",
    ),
    Component(
        key="kasia-indexer",
        name="Kasia Indexer",
        min_ram=1,
        recommended_ram=2,
        min_disk=10,
        min_cpu=0.5,
        category=ComponentCategory.INDEXER,
        disk_growth=True,
        description="Kaspa messaging indexer",
    ),
    Component(
        key="k-indexer",
        name="K-Social Indexer",
        min_ram=1,
        recommended_ram=2,
        min_disk=20,
        min_cpu=0.5,
        category=ComponentCategory.INDEXER,
        disk_growth=True,
        description="Social media indexer",
    ),
    Component(
        key="simply-kaspa-indexer",
        name="Simply Kaspa Indexer",
        min_ram=1,
        recommended_ram=2,
        min_disk=30,
        min_cpu=0.5,
        category=ComponentCategory.INDEXER,
        disk_growth=True,
        description="General-purpose blockchain indexer",
    ),
    Component(
        key="timescaledb",
        name="TimescaleDB",
        min_ram=2,
        recommended_ram=4,
        min_disk=50,
        min_cpu=1,
        category=ComponentCategory.DATABASE,
        disk_growth=True,
        shared_across_profiles=True,
        description="Time-series database for indexers",
    ),
    Component(
        key="archive-db",
        name="Archive Database",
        min_ram=4,
        recommended_ram=8,
        min_disk=200,
        min_cpu=2,
        category=ComponentCategory.DATABASE,
        disk_growth=True,
        description="Long-term data retention database",
    ),
    Component(
        key="kasia-app",
        name="Kasia App",
        min_ram=0.5,
        recommended_ram=1,
        min_disk=1,
        min_cpu=0.25,
        category=ComponentCategory.APP,
        description="Kaspa messaging application",
    ),
    Component(
        key="k-social-app",
        name="K-Social App",
        min_ram=0.5,
        recommended_ram=1,
        min_disk=1,
        min_cpu=0.25,
        category=ComponentCategory.APP,
        description="Social media application",
    ),
    Component(
        key="kaspa-stratum",
        name="Kaspa Stratum Bridge",
        min_ram=0.5,
        recommended_ram=1,
        min_disk=1,
        min_cpu=0.5,
        category=ComponentCategory.MINING,
        description="Mining stratum bridge",
    ),
)

BUILTIN_PROFILES = (
    Profile(
        key="core",
        name="Core",
        components=("dashboard", "nginx", NODE_COMPONENT),
        legacy_id="core-local",
        tier=1,
        supports_remote_node=True,
        env_defaults=MappingProxyType({"KASPA_NODE_MEMORY_LIMIT": "8g"}),
        description="Dashboard and Kaspa node",
    ),
    Profile(
        key="mining",
        name="Mining",
        components=("dashboard", "nginx", NODE_COMPONENT, "kaspa-stratum"),
        tier=2,
        optional=True,
        env_defaults=MappingProxyType(
            {"KASPA_NODE_MEMORY_LIMIT": "8g", "STRATUM_PORT": "5555"}
        ),
        description="Solo mining stratum pointed at a local node",
    ),
    Profile(
        key="production",
        name="Production",
        components=(
            "dashboard",
            "nginx",
            NODE_COMPONENT,
            "kasia-indexer",
            "kasia-app",
            "k-indexer",
            "k-social-app",
        ),
        legacy_id="kaspa-user-applications",
        tier=3,
        supports_remote_node=True,
        env_defaults=MappingProxyType(
            {
                "KASPA_NODE_MEMORY_LIMIT": "12g",
                "KASIA_APP_PORT": "3002",
                "KSOCIAL_APP_PORT": "3003",
            }
        ),
        description="User-facing applications with their indexers",
    ),
    Profile(
        key="explorer",
        name="Explorer",
        components=(
            "dashboard",
            "nginx",
            NODE_COMPONENT,
            "kasia-indexer",
            "k-indexer",
            "simply-kaspa-indexer",
            "timescaledb",
        ),
        legacy_id="indexer-services",
        tier=4,
        supports_remote_node=True,
        env_defaults=MappingProxyType(
            {"KASPA_NODE_MEMORY_LIMIT": "12g", "TIMESCALEDB_PORT": "5432"}
        ),
        description="Indexing services backed by TimescaleDB",
    ),
    Profile(
        key="archive",
        name="Archive",
        components=(
            "dashboard",
            "nginx",
            NODE_COMPONENT,
            "simply-kaspa-indexer",
            "archive-db",
        ),
        legacy_id="archive-node",
        tier=5,
        optional=True,
        env_defaults=MappingProxyType({"KASPA_NODE_MEMORY_LIMIT": "16g"}),
        description="Long-term data retention",
    ),
)


class RequirementCatalog:
    """Read-only component/profile tables with O(1) lookups."""

    def __init__(self, components: Iterable[Component], profiles: Iterable[Profile]):
        self._components = MappingProxyType({c.key: c for c in components})
        self._profiles = MappingProxyType({p.key: p for p in profiles})
        self._component_order = {key: i for i, key in enumerate(self._components)}
        self._profile_order = {key: i for i, key in enumerate(self._profiles)}

        aliases = {}
        for profile in self._profiles.values():
            for component_key in profile.components:
                if component_key not in self._components:
                    raise UnknownComponent(component_key)
            if profile.legacy_id:
                if profile.legacy_id in self._profiles or profile.legacy_id in aliases:
                    raise SettingsError(
                        f"Legacy id '{profile.legacy_id}' of {profile.key} collides "
                        "with another profile"
                    )
                aliases[profile.legacy_id] = profile.key
        self._aliases = MappingProxyType(aliases)

        owners: dict[str, list[str]] = {key: [] for key in self._components}
        for profile in self._profiles.values():
            for component_key in dict.fromkeys(profile.components):
                owners[component_key].append(profile.key)
        self._owners = MappingProxyType({k: tuple(v) for k, v in owners.items()})

        logger.debug(
            "Catalog loaded: %d components, %d profiles",
            len(self._components),
            len(self._profiles),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RequirementCatalog":
        """Build a catalog from a mapping shaped like the YAML catalog file."""
        if not isinstance(data, dict):
            raise SettingsError("Catalog data must be a mapping")
        try:
            components = [
                Component.from_dict(key, value)
                for key, value in (data.get("components") or {}).items()
            ]
            profiles = [
                Profile.from_dict(key, value)
                for key, value in (data.get("profiles") or {}).items()
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise SettingsError(f"Malformed catalog entry: {e}") from e
        return cls(components, profiles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "components": {
                key: {k: v for k, v in c.to_dict().items() if k != "key"}
                for key, c in self._components.items()
            },
            "profiles": {
                key: {k: v for k, v in p.to_dict().items() if k != "key"}
                for key, p in self._profiles.items()
            },
        }

    def requirements_of(self, component_key: str) -> Component:
        try:
            return self._components[component_key]
        except KeyError:
            raise UnknownComponent(component_key) from None

    def resolve_profile_key(self, profile_key: str) -> str:
        """Map a profile key or legacy alias to its canonical key."""
        if profile_key in self._profiles:
            return profile_key
        if profile_key in self._aliases:
            return self._aliases[profile_key]
        raise UnknownProfile(profile_key)

    def profile(self, profile_key: str) -> Profile:
        return self._profiles[self.resolve_profile_key(profile_key)]

    def components_of(self, profile_key: str) -> tuple[str, ...]:
        return self.profile(profile_key).components

    def all_profiles(self) -> list[Profile]:
        return list(self._profiles.values())

    def all_components(self) -> list[Component]:
        return list(self._components.values())

    def owners_of(self, component_key: str) -> tuple[str, ...]:
        """Profiles (catalog-wide) that include the component."""
        if component_key not in self._owners:
            raise UnknownComponent(component_key)
        return self._owners[component_key]

    def profiles_with_component(
        self, profile_keys: Iterable[str], component_key: str
    ) -> tuple[str, ...]:
        """Subset of ``profile_keys`` (canonical, catalog order) that include the component."""
        owners = set(self.owners_of(component_key))
        return tuple(key for key in self.normalize_selection(profile_keys) if key in owners)

    def has_category(self, profile_key: str, category: ComponentCategory) -> bool:
        return any(
            self._components[key].category is category
            for key in self.components_of(profile_key)
        )

    def normalize_selection(self, profile_keys: Iterable[str]) -> tuple[str, ...]:
        """Resolve aliases, drop repeats and sort into catalog order."""
        if isinstance(profile_keys, str):
            profile_keys = [profile_keys]
        resolved = {self.resolve_profile_key(key) for key in profile_keys}
        return tuple(sorted(resolved, key=self._profile_order.__getitem__))

    def sort_components(self, component_keys: Iterable[str]) -> list[str]:
        return sorted(set(component_keys), key=self._component_order.__getitem__)


def load_catalog(path: str | Path) -> RequirementCatalog:
    """Load a catalog from a YAML file."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in {path}: {e}") from e
    logger.info("Loading requirement catalog from %s", path)
    return RequirementCatalog.from_dict(data or {})


@functools.lru_cache(maxsize=1)
def default_catalog() -> RequirementCatalog:
    """The built-in catalog, created once per process."""
    return RequirementCatalog(BUILTIN_COMPONENTS, BUILTIN_PROFILES)
