"""
Compatibility Rater.

Compares a SystemResources snapshot against a requirement (one
component, one profile or an aggregate) and returns a four-tier
rating. Each dimension is checked on its own and the worst outcome wins.
"""

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from kaspa_planner.aggregation import aggregate
from kaspa_planner.catalog import RequirementCatalog, default_catalog
from kaspa_planner.resources import SystemResources

logger = logging.getLogger(__name__)

# Availability must reach recommended x OPTIMAL_HEADROOM in every
# dimension for an "optimal" rating.
OPTIMAL_HEADROOM = 1.25


@functools.total_ordering
class CompatibilityRating(Enum):
    """Fitness verdict, ordered NOT_RECOMMENDED < POSSIBLE < RECOMMENDED < OPTIMAL."""

    NOT_RECOMMENDED = "not-recommended"
    POSSIBLE = "possible"
    RECOMMENDED = "recommended"
    OPTIMAL = "optimal"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other):
        if not isinstance(other, CompatibilityRating):
            return NotImplemented
        return self.rank < other.rank

    def __str__(self) -> str:
        return self.value


_RANKS = {rating: i for i, rating in enumerate(CompatibilityRating)}

RATING_MESSAGES = {
    CompatibilityRating.NOT_RECOMMENDED: "System does not meet minimum requirements",
    CompatibilityRating.POSSIBLE: (
        "System meets minimum requirements but may experience performance issues"
    ),
    CompatibilityRating.RECOMMENDED: "System meets recommended requirements",
    CompatibilityRating.OPTIMAL: "System comfortably exceeds recommended requirements",
}


@dataclass(frozen=True)
class DimensionCheck:
    """Outcome for one resource dimension (RAM, disk or CPU)."""

    available: float
    required: float
    recommended: float
    meets_min: bool
    meets_recommended: bool
    meets_optimal: bool
    shortfall: float

    @classmethod
    def evaluate(
        cls, available: float, required: float, recommended: float, headroom: float
    ) -> "DimensionCheck":
        return cls(
            available=available,
            required=required,
            recommended=recommended,
            meets_min=available >= required,
            meets_recommended=available >= recommended,
            meets_optimal=available >= recommended * headroom,
            shortfall=max(0.0, required - available),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "required": self.required,
            "recommended": self.recommended,
            "meets_min": self.meets_min,
            "meets_recommended": self.meets_recommended,
            "meets_optimal": self.meets_optimal,
            "shortfall": self.shortfall,
        }


@dataclass(frozen=True)
class RatingResult:
    rating: CompatibilityRating
    recommendation: str
    ram: DimensionCheck
    disk: DimensionCheck
    cpu: DimensionCheck
    subject: str = ""

    @property
    def checks(self) -> dict[str, DimensionCheck]:
        return {"ram": self.ram, "disk": self.disk, "cpu": self.cpu}

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "rating": self.rating.value,
            "recommendation": self.recommendation,
            "checks": {name: check.to_dict() for name, check in self.checks.items()},
        }


def rate(
    resources: SystemResources,
    requirement,
    headroom: float = OPTIMAL_HEADROOM,
    subject: str = "",
) -> RatingResult:
    """
    Rate how well the resources cover a requirement.

    Args:
        resources: Measured capacity of the target machine.
        requirement: Anything with ``min_ram``, ``recommended_ram``,
            ``min_disk`` and ``min_cpu`` (a Component or an
            AggregateRequirement).
        headroom: Multiplier over recommended needed for "optimal".

    Returns:
        RatingResult with the combined rating and per-dimension checks.
    """
    checks = {
        "ram": DimensionCheck.evaluate(
            resources.effective_ram_gb,
            requirement.min_ram,
            requirement.recommended_ram,
            headroom,
        ),
        # Disk and CPU have no separate recommended value.
        "disk": DimensionCheck.evaluate(
            resources.disk.free_gb, requirement.min_disk, requirement.min_disk, headroom
        ),
        "cpu": DimensionCheck.evaluate(
            resources.cpu.count, requirement.min_cpu, requirement.min_cpu, headroom
        ),
    }
    dims = checks.values()

    if not all(c.meets_min for c in dims):
        rating = CompatibilityRating.NOT_RECOMMENDED
    elif not all(c.meets_recommended for c in dims):
        rating = CompatibilityRating.POSSIBLE
    elif all(c.meets_optimal for c in dims):
        rating = CompatibilityRating.OPTIMAL
    else:
        rating = CompatibilityRating.RECOMMENDED

    logger.debug(
        "Rated %s: %s (ram %.4g/%.4g GB)",
        subject or "requirement",
        rating.value,
        checks["ram"].available,
        checks["ram"].required,
    )
    return RatingResult(
        rating=rating,
        recommendation=RATING_MESSAGES[rating],
        subject=subject,
        **checks,
    )


def check_component_compatibility(
    resources: SystemResources,
    component_key: str,
    catalog: RequirementCatalog | None = None,
    headroom: float = OPTIMAL_HEADROOM,
) -> RatingResult:
    catalog = catalog or default_catalog()
    component = catalog.requirements_of(component_key)
    return rate(resources, component, headroom, subject=component.name)


def check_profile_compatibility(
    resources: SystemResources,
    profile_key: str,
    catalog: RequirementCatalog | None = None,
    headroom: float = OPTIMAL_HEADROOM,
) -> RatingResult:
    catalog = catalog or default_catalog()
    profile = catalog.profile(profile_key)
    return rate(resources, aggregate([profile.key], catalog), headroom, subject=profile.name)
