"""
Recommendation Engine.

Turns a SystemResources snapshot into a primary profile suggestion,
alternatives, warnings and suggestions, and templates that suggestion
into environment variables. ``check_selection`` evaluates a profile set
the operator picked themselves and lists ways to make it fit.

The engine only informs. It never blocks a selection.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from kaspa_planner.aggregation import AggregateRequirement, aggregate, without_components
from kaspa_planner.catalog import (
    NODE_COMPONENT,
    ComponentCategory,
    Profile,
    RequirementCatalog,
    default_catalog,
    load_catalog,
)
from kaspa_planner.rating import CompatibilityRating, RatingResult, rate
from kaspa_planner.resources import SystemResources
from kaspa_planner.settings import PlannerSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileSuggestion:
    profile: str
    reason: str
    use_remote_node: bool = False
    rating: CompatibilityRating = CompatibilityRating.POSSIBLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile,
            "reason": self.reason,
            "use_remote_node": self.use_remote_node,
            "rating": self.rating.value,
        }


@dataclass
class RecommendationResult:
    primary: ProfileSuggestion
    alternatives: list[ProfileSuggestion] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary.to_dict(),
            "alternatives": [a.to_dict() for a in self.alternatives],
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


@dataclass
class AutoConfiguration:
    profile: str
    use_remote_node: bool
    env_vars: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile,
            "use_remote_node": self.use_remote_node,
            "env_vars": dict(self.env_vars),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class SelectionWarning:
    type: str
    severity: str
    message: str
    recommendation: str = ""
    shortfall: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "recommendation": self.recommendation,
            "shortfall": self.shortfall,
        }


@dataclass(frozen=True)
class Optimization:
    type: str
    priority: str
    title: str
    description: str
    action: str = ""
    details: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "action": self.action,
            "details": list(self.details),
        }


@dataclass
class SelectionCheck:
    """Combined requirement of a chosen profile set against one machine."""

    requirement: AggregateRequirement
    rating: RatingResult
    warnings: list[SelectionWarning] = field(default_factory=list)
    optimizations: list[Optimization] = field(default_factory=list)

    @property
    def sufficient(self) -> bool:
        return all(check.meets_min for check in self.rating.checks.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "requirement": self.requirement.to_dict(),
            "rating": self.rating.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
            "optimizations": [o.to_dict() for o in self.optimizations],
            "sufficient": self.sufficient,
        }


class RecommendationEngine:
    """
    Suggests profiles for a machine.

    Precedence on effective RAM (thresholds come from PlannerSettings):
    - abundant: the fullest profile rated at least "recommended" with a
      local node
    - moderate: the baseline profile, with a remote node when hosting
      the node locally would drop below "recommended"
    - minimal: the smallest profile that can run against a remote node
    """

    def __init__(
        self,
        catalog: RequirementCatalog | None = None,
        settings: PlannerSettings | None = None,
    ):
        self.settings = settings or PlannerSettings()
        if catalog is None and self.settings.catalog_path:
            catalog = load_catalog(self.settings.catalog_path)
        self.catalog = catalog or default_catalog()

    def _rate(self, resources: SystemResources, requirement, subject: str = "") -> RatingResult:
        return rate(resources, requirement, self.settings.optimal_headroom, subject)

    def _requirement(self, profile: Profile, remote: bool = False) -> AggregateRequirement:
        requirement = aggregate([profile.key], self.catalog)
        if remote and NODE_COMPONENT in profile.components:
            requirement = without_components(requirement, [NODE_COMPONENT], self.catalog)
        return requirement

    def _baseline(self) -> Profile:
        return min(self.catalog.all_profiles(), key=lambda p: p.tier)

    def recommend(self, resources: SystemResources) -> RecommendationResult:
        ram = resources.effective_ram_gb
        profiles = self.catalog.all_profiles()
        local = {
            p.key: self._rate(resources, self._requirement(p), p.name) for p in profiles
        }

        warnings: list[str] = []
        suggestions: list[str] = []
        primary = None

        if ram >= self.settings.abundant_ram_gb:
            sustainable = [
                p for p in profiles if local[p.key].rating >= CompatibilityRating.RECOMMENDED
            ]
            if sustainable:
                best = max(sustainable, key=lambda p: p.tier)
                primary = ProfileSuggestion(
                    profile=best.key,
                    reason=f"Abundant RAM - {best.name} profile with a local node",
                    rating=local[best.key].rating,
                )

        if primary is None and ram >= self.settings.minimal_ram_gb:
            baseline = self._baseline()
            node_ram = self._requirement(baseline).recommended_ram
            if (
                local[baseline.key].rating >= CompatibilityRating.RECOMMENDED
                or not baseline.supports_remote_node
            ):
                primary = ProfileSuggestion(
                    profile=baseline.key,
                    reason=f"Moderate RAM - {baseline.name} profile with a local node",
                    rating=local[baseline.key].rating,
                )
            else:
                remote = self._rate(resources, self._requirement(baseline, remote=True))
                primary = ProfileSuggestion(
                    profile=baseline.key,
                    reason=f"Limited RAM - {baseline.name} profile with a remote node",
                    use_remote_node=True,
                    rating=remote.rating,
                )
                warnings.append(
                    f"Limited RAM ({ram:.1f}GB). A local Kaspa node needs "
                    f"{node_ram:.1f}GB+ RAM."
                )
                suggestions.append(
                    f"Consider upgrading RAM to {node_ram:.1f}GB+ to run a local node"
                )

        if primary is None:
            primary = self._smallest_viable(resources)
            warnings.append(
                f"System has very limited RAM ({ram:.1f}GB). A local Kaspa node will not work."
            )

        alternatives = sorted(
            (
                ProfileSuggestion(
                    profile=p.key,
                    reason=local[p.key].recommendation,
                    rating=local[p.key].rating,
                )
                for p in profiles
                if p.key != primary.profile
                and local[p.key].rating >= CompatibilityRating.POSSIBLE
            ),
            key=lambda s: (s.rating.rank, self.catalog.profile(s.profile).tier),
            reverse=True,
        )

        free_disk = resources.disk.free_gb
        if free_disk < self.settings.low_disk_gb:
            shortfall = self.settings.low_disk_gb - free_disk
            warnings.append(
                f"Limited disk space ({free_disk:.1f}GB, {shortfall:.1f}GB short of "
                f"{self.settings.low_disk_gb:.0f}GB). The Kaspa node will grow over time."
            )
            suggestions.append("Consider adding more disk space or using a remote node")

        if resources.disk.type.upper() != "SSD" and self.catalog.has_category(
            primary.profile, ComponentCategory.INDEXER
        ):
            suggestions.append("SSD recommended for better performance, especially for indexers")

        docker_limit = resources.docker_memory_limit_gb
        if docker_limit is not None and docker_limit < resources.memory.available_gb:
            warnings.append(
                f"Docker memory limit ({docker_limit:.1f}GB) is lower than system RAM. "
                "Increase the Docker memory limit in Docker Desktop settings."
            )

        logger.info(
            "Recommended %s (%s node) for %.1fGB effective RAM",
            primary.profile,
            "remote" if primary.use_remote_node else "local",
            ram,
        )
        return RecommendationResult(
            primary=primary,
            alternatives=alternatives,
            warnings=warnings,
            suggestions=suggestions,
        )

    def _smallest_viable(self, resources: SystemResources) -> ProfileSuggestion:
        remote_capable = [p for p in self.catalog.all_profiles() if p.supports_remote_node]
        candidates = remote_capable or self.catalog.all_profiles()
        use_remote = bool(remote_capable)
        smallest = min(
            candidates,
            key=lambda p: (self._requirement(p, remote=use_remote).min_ram, p.tier),
        )
        rating = self._rate(resources, self._requirement(smallest, remote=use_remote)).rating
        return ProfileSuggestion(
            profile=smallest.key,
            reason=f"Very limited RAM - {smallest.name} profile"
            + (" with a remote node" if use_remote else ""),
            use_remote_node=use_remote,
            rating=rating,
        )

    def generate_auto_configuration(self, resources: SystemResources) -> AutoConfiguration:
        """Template the recommended profile into environment variables."""
        recommendation = self.recommend(resources)
        primary = recommendation.primary
        profile = self.catalog.profile(primary.profile)

        env_vars = dict(profile.env_defaults)
        if primary.use_remote_node:
            env_vars["KASPA_NODE_MODE"] = "remote"
            env_vars["REMOTE_KASPA_NODE_URL"] = self.settings.remote_node_url
            # no local node to size
            env_vars.pop("KASPA_NODE_MEMORY_LIMIT", None)
            env_vars["KASPA_RPC_SERVER"] = self.settings.remote_node_url
        else:
            env_vars["KASPA_NODE_MODE"] = "local"
            env_vars["KASPA_RPC_SERVER"] = self.settings.local_rpc_server

        return AutoConfiguration(
            profile=profile.key,
            use_remote_node=primary.use_remote_node,
            env_vars=env_vars,
            warnings=list(recommendation.warnings),
            suggestions=list(recommendation.suggestions),
        )

    def check_selection(
        self, resources: SystemResources, profile_keys: Iterable[str]
    ) -> SelectionCheck:
        """
        Evaluate a profile set chosen by the operator.

        Args:
            resources: Measured capacity of the target machine.
            profile_keys: Selected profile keys or legacy aliases.

        Returns:
            SelectionCheck with the deduplicated requirement, its rating,
            typed warnings and optimization hints.
        """
        requirement = aggregate(profile_keys, self.catalog)
        result = self._rate(resources, requirement, ", ".join(requirement.profiles))
        ram, disk, cpu = result.ram, result.disk, result.cpu

        warnings = []
        if not ram.meets_min:
            warnings.append(
                SelectionWarning(
                    type="insufficient_ram",
                    severity="critical",
                    message=f"Insufficient RAM: {ram.available:.1f}GB available, "
                    f"{ram.required:.1f}GB required",
                    recommendation="Reduce selected profiles or upgrade system RAM",
                    shortfall=ram.shortfall,
                )
            )
        elif not ram.meets_recommended:
            warnings.append(
                SelectionWarning(
                    type="below_recommended_ram",
                    severity="warning",
                    message=f"RAM below recommended: {ram.available:.1f}GB available, "
                    f"{ram.recommended:.1f}GB recommended",
                    recommendation="System will work but may slow down under load",
                )
            )
        if not disk.meets_min:
            warnings.append(
                SelectionWarning(
                    type="insufficient_disk",
                    severity="critical",
                    message=f"Insufficient disk space: {disk.available:.1f}GB available, "
                    f"{disk.required:.1f}GB required",
                    recommendation="Free up disk space or reduce selected profiles",
                    shortfall=disk.shortfall,
                )
            )
        if not cpu.meets_min:
            warnings.append(
                SelectionWarning(
                    type="insufficient_cpu",
                    severity="warning",
                    message=f"CPU cores below minimum: {cpu.available:g} available, "
                    f"{cpu.required:g} required",
                    recommendation="System may experience slow performance",
                    shortfall=cpu.shortfall,
                )
            )
        docker_limit = resources.docker_memory_limit_gb
        if docker_limit is not None and docker_limit < requirement.min_ram:
            warnings.append(
                SelectionWarning(
                    type="docker_memory_limit",
                    severity="critical",
                    message=f"Docker memory limit ({docker_limit:.1f}GB) is below required "
                    f"RAM ({requirement.min_ram:.1f}GB)",
                    recommendation="Increase the Docker memory limit in Docker Desktop settings",
                )
            )

        return SelectionCheck(
            requirement=requirement,
            rating=result,
            warnings=warnings,
            optimizations=self._optimizations(resources, requirement, result),
        )

    def _optimizations(
        self,
        resources: SystemResources,
        requirement: AggregateRequirement,
        result: RatingResult,
    ) -> list[Optimization]:
        hints = []
        selected = [self.catalog.profile(key) for key in requirement.profiles]

        if not result.ram.meets_min or not result.disk.meets_min:
            if NODE_COMPONENT in requirement.components and any(
                p.supports_remote_node and NODE_COMPONENT in p.components for p in selected
            ):
                node = self.catalog.requirements_of(NODE_COMPONENT)
                hints.append(
                    Optimization(
                        type="use_remote_node",
                        priority="high",
                        title="Use Remote Kaspa Node",
                        description=f"Connect to a remote node to save {node.min_ram:g}GB "
                        f"RAM and {node.min_disk:g}GB+ disk",
                        action="Set KASPA_NODE_MODE=remote",
                    )
                )
            indexed = [
                p.key
                for p in selected
                if p.supports_remote_node
                and self.catalog.has_category(p.key, ComponentCategory.INDEXER)
            ]
            if indexed:
                hints.append(
                    Optimization(
                        type="use_public_indexers",
                        priority="high",
                        title="Use Public Indexers",
                        description="Connect to public indexer services instead of "
                        "running local indexers",
                        action="Configure applications to use public indexer endpoints",
                        details=tuple(indexed),
                    )
                )
            optional = [p.key for p in selected if p.optional]
            if optional:
                hints.append(
                    Optimization(
                        type="remove_optional",
                        priority="medium",
                        title="Remove Optional Profiles",
                        description="Consider removing optional profiles: "
                        + ", ".join(optional),
                        action="Deselect optional profiles to reduce resource requirements",
                        details=tuple(optional),
                    )
                )

        if result.ram.meets_min and not result.ram.meets_recommended:
            missing = result.ram.recommended - result.ram.available
            hints.append(
                Optimization(
                    type="upgrade_ram",
                    priority="medium",
                    title="Upgrade System RAM",
                    description=f"System will work but {missing:.1f}GB more RAM is "
                    "recommended",
                    action="Consider upgrading system RAM when possible",
                )
            )

        if resources.disk.type.upper() == "HDD":
            hints.append(
                Optimization(
                    type="upgrade_to_ssd",
                    priority="medium",
                    title="Upgrade to SSD",
                    description="HDD detected. SSD strongly recommended for indexers "
                    "and node sync",
                    action="Consider migrating to SSD storage",
                )
            )

        docker_limit = resources.docker_memory_limit_gb
        total_ram = resources.memory.total_gb
        if docker_limit is not None and docker_limit < total_ram * self.settings.docker_limit_ratio:
            hints.append(
                Optimization(
                    type="increase_docker_limit",
                    priority="high",
                    title="Increase Docker Memory Limit",
                    description=f"Docker is limited to {docker_limit:.1f}GB but the system "
                    f"has {total_ram:.1f}GB total",
                    action="Raise the Docker memory limit to at least "
                    f"{self.settings.docker_limit_ratio:.0%} of system RAM",
                )
            )

        if requirement.shared_resources:
            hints.append(
                Optimization(
                    type="shared_resources",
                    priority="info",
                    title="Shared Resources Detected",
                    description=f"{len(requirement.shared_resources)} services are shared "
                    f"across profiles, saving {requirement.ram_savings:g}GB RAM",
                    details=tuple(
                        f"{s.name} shared by {len(s.used_by)} profiles"
                        for s in requirement.shared_resources
                    ),
                )
            )

        return hints
