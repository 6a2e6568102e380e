"""
Aggregation Engine.

Combines component requirements across a set of profiles. A component
referenced by several selected profiles is counted exactly once, so the
combined requirement never exceeds the sum of the standalone
requirements, and equals it only when nothing is shared.

Catalog figures are decimal GB (0.1, 0.256, ...). Totals are summed as
exact fractions and rounded to float once, so the result does not depend
on summation order.
"""

import logging
from collections.abc import Iterable
from fractions import Fraction
from dataclasses import dataclass, field
from typing import Any

from kaspa_planner.catalog import Component, RequirementCatalog, default_catalog
from kaspa_planner.errors import EmptySelection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedResource:
    """A component used by two or more of the selected profiles."""

    component: str
    name: str
    used_by: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"component": self.component, "name": self.name, "used_by": list(self.used_by)}


@dataclass(frozen=True)
class ComponentShare:
    component: str
    shared: bool


@dataclass(frozen=True)
class ProfileBreakdown:
    """What one profile would cost if installed on its own."""

    profile: str
    name: str
    min_ram: float
    recommended_ram: float
    min_disk: float
    min_cpu: float
    components: tuple[ComponentShare, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile,
            "name": self.name,
            "min_ram": self.min_ram,
            "recommended_ram": self.recommended_ram,
            "min_disk": self.min_disk,
            "min_cpu": self.min_cpu,
            "components": [
                {"component": c.component, "shared": c.shared} for c in self.components
            ],
        }


@dataclass(frozen=True)
class AggregateRequirement:
    """Deduplicated resource requirement of a profile set."""

    profiles: tuple[str, ...]
    min_ram: float
    recommended_ram: float
    min_disk: float
    min_cpu: float
    components: tuple[str, ...]
    shared_resources: tuple[SharedResource, ...] = ()
    profile_breakdown: tuple[ProfileBreakdown, ...] = ()
    excluded: tuple[str, ...] = field(default=())

    @property
    def standalone_min_ram(self) -> float:
        """Naive sum of each selected profile's own minimum RAM."""
        return decimal_sum(b.min_ram for b in self.profile_breakdown)

    @property
    def ram_savings(self) -> float:
        standalone = sum((_exact(b.min_ram) for b in self.profile_breakdown), Fraction(0))
        return float(standalone - _exact(self.min_ram))

    def to_dict(self) -> dict[str, Any]:
        return {
            "profiles": list(self.profiles),
            "min_ram": self.min_ram,
            "recommended_ram": self.recommended_ram,
            "min_disk": self.min_disk,
            "min_cpu": self.min_cpu,
            "components": list(self.components),
            "excluded": list(self.excluded),
            "shared_resources": [s.to_dict() for s in self.shared_resources],
            "profile_breakdown": [b.to_dict() for b in self.profile_breakdown],
            "standalone_min_ram": self.standalone_min_ram,
            "ram_savings": self.ram_savings,
        }


def _exact(value) -> Fraction:
    # str() gives back the shortest decimal, i.e. the figure as written in the catalog
    return Fraction(str(value))


def decimal_sum(values: Iterable[float]) -> float:
    """Sum decimal quantities exactly and round once."""
    return float(sum((_exact(v) for v in values), Fraction(0)))


def _totals(components: Iterable[Component]) -> tuple[float, float, float, float]:
    components = list(components)
    return (
        decimal_sum(c.min_ram for c in components),
        decimal_sum(c.recommended_ram for c in components),
        decimal_sum(c.min_disk for c in components),
        decimal_sum(c.min_cpu for c in components),
    )


def _aggregate(
    profile_keys: Iterable[str],
    catalog: RequirementCatalog,
    exclude: frozenset[str] = frozenset(),
) -> AggregateRequirement:
    profile_keys = [profile_keys] if isinstance(profile_keys, str) else list(profile_keys)
    if not profile_keys:
        raise EmptySelection()

    selected = catalog.normalize_selection(profile_keys)

    used_by: dict[str, list[str]] = {}
    for profile_key in selected:
        for component_key in catalog.components_of(profile_key):
            if component_key in exclude:
                continue
            owners = used_by.setdefault(component_key, [])
            if profile_key not in owners:
                owners.append(profile_key)

    unique = catalog.sort_components(used_by)
    min_ram, recommended_ram, min_disk, min_cpu = _totals(
        catalog.requirements_of(key) for key in unique
    )

    shared = tuple(
        SharedResource(
            component=key,
            name=catalog.requirements_of(key).name,
            used_by=tuple(used_by[key]),
        )
        for key in unique
        if len(used_by[key]) >= 2
    )
    shared_keys = {s.component for s in shared}

    breakdown = []
    for profile_key in selected:
        own = [
            key
            for key in dict.fromkeys(catalog.components_of(profile_key))
            if key not in exclude
        ]
        p_min_ram, p_rec_ram, p_disk, p_cpu = _totals(
            catalog.requirements_of(key) for key in catalog.sort_components(own)
        )
        breakdown.append(
            ProfileBreakdown(
                profile=profile_key,
                name=catalog.profile(profile_key).name,
                min_ram=p_min_ram,
                recommended_ram=p_rec_ram,
                min_disk=p_disk,
                min_cpu=p_cpu,
                components=tuple(ComponentShare(key, key in shared_keys) for key in own),
            )
        )

    result = AggregateRequirement(
        profiles=selected,
        min_ram=min_ram,
        recommended_ram=recommended_ram,
        min_disk=min_disk,
        min_cpu=min_cpu,
        components=tuple(unique),
        shared_resources=shared,
        profile_breakdown=tuple(breakdown),
        excluded=tuple(catalog.sort_components(exclude)),
    )
    logger.debug(
        "Aggregated %s: %d components, %.4g GB min RAM (%d shared)",
        ",".join(selected),
        len(unique),
        min_ram,
        len(shared),
    )
    return result


def aggregate(
    profile_keys: Iterable[str], catalog: RequirementCatalog | None = None
) -> AggregateRequirement:
    """
    Combine the requirements of the selected profiles.

    Args:
        profile_keys: Profile keys or legacy aliases. Order and repeats
            do not affect the result.
        catalog: Catalog to read from (built-in catalog by default).

    Returns:
        AggregateRequirement with each unique component counted once.

    Raises:
        EmptySelection: No profile was given.
        UnknownProfile: A key is not in the catalog.
    """
    return _aggregate(profile_keys, catalog or default_catalog())


def without_components(
    requirement: AggregateRequirement,
    component_keys: Iterable[str],
    catalog: RequirementCatalog | None = None,
) -> AggregateRequirement:
    """Requirement of the same profiles with some components left out.

    Used for the remote-node variant, where the local ``kaspa-node`` is
    replaced by a public endpoint.
    """
    catalog = catalog or default_catalog()
    exclude = frozenset(requirement.excluded) | frozenset(component_keys)
    for key in exclude:
        catalog.requirements_of(key)
    return _aggregate(requirement.profiles, catalog, exclude)
