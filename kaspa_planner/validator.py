"""
Configuration Validator.

Runs a configuration mapping through an ordered list of rules:

1. deprecated-field migration
2. conditional required fields
3. port conflicts
4. address/network consistency
5. format checks
6. missing recommended fields
7. network change against a previous installation

Migration runs first and hands its migrated copy to every later rule.
User-correctable problems come back as ValidationIssue objects; only
caller mistakes (no profiles, unknown profile) raise.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from kaspa_planner.address import (
    detect_network_from_address,
    network_family,
    validate_kaspa_address,
)
from kaspa_planner.catalog import ComponentCategory, RequirementCatalog, default_catalog
from kaspa_planner.errors import EmptySelection
from kaspa_planner.fields import (
    CONDITIONAL_REQUIRED,
    DEPRECATED_FIELDS,
    FIELDS_BY_KEY,
    MINING_ADDRESS,
    NETWORK_FIELD,
    PORT_MAX,
    PORT_MIN,
    REMOVED_FIELDS,
    VALID_NETWORKS,
    FieldKind,
    configured_network,
    is_blank,
    is_truthy,
    parse_port,
    relevant_fields,
)
from kaspa_planner.state import InstallationState

logger = logging.getLogger(__name__)


class IssueType(str, Enum):
    REQUIRED = "required"
    PORT_CONFLICT = "port_conflict"
    KASPA_ADDRESS = "kaspaAddress"
    RANGE = "range"
    ENUM = "enum"
    DEPRECATION = "deprecation"
    NETWORK_MISMATCH = "networkMismatch"
    MISSING_RECOMMENDED = "missingRecommended"
    NETWORK_CHANGE = "network_change"


BLOCKING_TYPES = frozenset(
    {
        IssueType.REQUIRED,
        IssueType.PORT_CONFLICT,
        IssueType.KASPA_ADDRESS,
        IssueType.RANGE,
        IssueType.ENUM,
    }
)

CRITICAL_TYPES = frozenset({IssueType.REQUIRED, IssueType.PORT_CONFLICT})


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    type: IssueType
    message: str
    severity: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def blocking(self) -> bool:
        return self.type in BLOCKING_TYPES

    def to_dict(self) -> dict[str, Any]:
        data = {"field": self.field, "type": self.type.value, "message": self.message}
        if self.severity:
            data["severity"] = self.severity
        data.update(self.details)
        return data


@dataclass
class ValidationContext:
    profiles: tuple[str, ...]
    catalog: RequirementCatalog
    previous_config: Mapping[str, Any] | None = None
    issues: list[ValidationIssue] = field(default_factory=list)

    def has_issue(self, field_key: str, issue_type: IssueType) -> bool:
        return any(i.field == field_key and i.type is issue_type for i in self.issues)

    def has_category(self, category: ComponentCategory) -> bool:
        return any(self.catalog.has_category(p, category) for p in self.profiles)


class ValidationRule:
    """Base class for configuration rules."""

    name = "rule"

    def evaluate(self, config: Mapping[str, Any], context: ValidationContext) -> list[ValidationIssue]:
        """
        Check a configuration.

        Returns:
            Issues found (empty when the rule passes)
        """
        raise NotImplementedError

    def apply(
        self, config: Mapping[str, Any], context: ValidationContext
    ) -> tuple[dict[str, Any], list[ValidationIssue]]:
        """Run the rule. Rules that rewrite the configuration override this."""
        return dict(config), self.evaluate(config, context)


def _migrate(config: Mapping[str, Any]) -> tuple[dict[str, Any], list[ValidationIssue]]:
    migrated = dict(config)
    issues = []

    for old, new in DEPRECATED_FIELDS.items():
        if old not in migrated or is_blank(migrated[old]):
            continue
        if new in migrated and not is_blank(migrated[new]):
            issues.append(
                ValidationIssue(
                    field=old,
                    type=IssueType.DEPRECATION,
                    message=f"{old} is deprecated and will be ignored because {new} is set",
                    details={"replacement": new, "action": "ignored"},
                )
            )
            continue
        migrated[new] = migrated.pop(old)
        issues.append(
            ValidationIssue(
                field=old,
                type=IssueType.DEPRECATION,
                message=f"{old} is deprecated; its value was moved to {new}",
                details={"replacement": new, "action": "migrated"},
            )
        )

    for key, reason in REMOVED_FIELDS.items():
        if key in migrated:
            del migrated[key]
            issues.append(
                ValidationIssue(
                    field=key,
                    type=IssueType.DEPRECATION,
                    message=f"{key} is no longer supported and was removed. {reason}.",
                    details={"action": "removed"},
                )
            )

    if issues:
        logger.warning("Migrated deprecated fields: %s", ", ".join(i.field for i in issues))
    return migrated, issues


def migrate_config(config: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``config`` with deprecated and removed keys handled."""
    return _migrate(config)[0]


class DeprecatedFieldMigration(ValidationRule):
    name = "deprecated_fields"

    def evaluate(self, config, context):
        return _migrate(config)[1]

    def apply(self, config, context):
        return _migrate(config)


class ConditionalRequiredRule(ValidationRule):
    name = "conditional_required"

    def evaluate(self, config, context):
        issues = []
        for key, (trigger, reason) in CONDITIONAL_REQUIRED.items():
            if is_truthy(config.get(trigger)) and is_blank(config.get(key)):
                label = FIELDS_BY_KEY[key].label
                issues.append(
                    ValidationIssue(
                        field=key,
                        type=IssueType.REQUIRED,
                        message=f"{label} is required when {reason} ({trigger})",
                        details={"trigger": trigger},
                    )
                )
        return issues


class PortConflictRule(ValidationRule):
    name = "port_conflicts"

    def evaluate(self, config, context):
        issues = []
        holders: dict[int, str] = {}
        for spec in relevant_fields(FieldKind.PORT, context.profiles, context.catalog):
            port = parse_port(config.get(spec.key))
            if port is None:
                continue
            if port in holders:
                issues.append(
                    ValidationIssue(
                        field=spec.key,
                        type=IssueType.PORT_CONFLICT,
                        message=f"Port {port} is used by both {holders[port]} and {spec.key}",
                        details={"port": port, "conflicts_with": holders[port]},
                    )
                )
            else:
                holders[port] = spec.key
        return issues


class NetworkConsistencyRule(ValidationRule):
    name = "network_consistency"

    def evaluate(self, config, context):
        issues = []
        configured = configured_network(config)
        if configured not in VALID_NETWORKS:
            # already reported by the enum check
            return issues
        for spec in relevant_fields(FieldKind.ADDRESS, context.profiles, context.catalog):
            value = config.get(spec.key)
            if is_blank(value):
                continue
            detected = detect_network_from_address(str(value))
            if detected is None or network_family(detected) == network_family(configured):
                continue
            issues.append(
                ValidationIssue(
                    field=spec.key,
                    type=IssueType.NETWORK_MISMATCH,
                    message=f"{spec.label} appears to be for {detected}, "
                    f"but the node is configured for {configured}",
                    details={"address_network": detected, "configured_network": configured},
                )
            )
        return issues


class FormatRule(ValidationRule):
    name = "format"

    def evaluate(self, config, context):
        issues = []

        for spec in relevant_fields(FieldKind.ADDRESS, context.profiles, context.catalog):
            value = config.get(spec.key)
            if is_blank(value):
                continue
            check = validate_kaspa_address(value)
            if not check.valid:
                issues.append(
                    ValidationIssue(
                        field=spec.key,
                        type=IssueType.KASPA_ADDRESS,
                        message=check.error,
                        details={"network": check.network} if check.network else {},
                    )
                )

        for spec in relevant_fields(FieldKind.PORT, context.profiles, context.catalog):
            value = config.get(spec.key)
            if is_blank(value):
                continue
            port = parse_port(value)
            if port is None or not PORT_MIN <= port <= PORT_MAX:
                issues.append(
                    ValidationIssue(
                        field=spec.key,
                        type=IssueType.RANGE,
                        message=f"{spec.label} must be between {PORT_MIN} and {PORT_MAX}",
                        details={"min": PORT_MIN, "max": PORT_MAX},
                    )
                )

        if not is_blank(config.get(NETWORK_FIELD)):
            network = configured_network(config)
            if network not in VALID_NETWORKS:
                issues.append(
                    ValidationIssue(
                        field=NETWORK_FIELD,
                        type=IssueType.ENUM,
                        message=f"Network must be one of: {', '.join(VALID_NETWORKS)}",
                        details={"allowed": list(VALID_NETWORKS)},
                    )
                )
        return issues


class MissingRecommendedRule(ValidationRule):
    name = "missing_recommended"

    def evaluate(self, config, context):
        issues = []
        if (
            context.has_category(ComponentCategory.MINING)
            and is_blank(config.get(MINING_ADDRESS))
            and not context.has_issue(MINING_ADDRESS, IssueType.REQUIRED)
        ):
            issues.append(
                ValidationIssue(
                    field=MINING_ADDRESS,
                    type=IssueType.MISSING_RECOMMENDED,
                    message="Mining profile selected but no mining address configured. "
                    "You will need to set this before mining.",
                )
            )
        if is_truthy(config.get("PUBLIC_NODE")) and is_blank(config.get("EXTERNAL_IP")):
            issues.append(
                ValidationIssue(
                    field="EXTERNAL_IP",
                    type=IssueType.MISSING_RECOMMENDED,
                    message="Public node enabled but no external IP configured. "
                    "Peers may not be able to reach the node.",
                )
            )
        return issues


class NetworkChangeRule(ValidationRule):
    name = "network_change"

    def evaluate(self, config, context):
        if context.previous_config is None:
            return []
        previous = configured_network(context.previous_config)
        current = configured_network(config)
        if previous == current:
            return []
        return [
            ValidationIssue(
                field=NETWORK_FIELD,
                type=IssueType.NETWORK_CHANGE,
                message=f"Changing network from {previous} to {current} requires a fresh "
                "installation. Mainnet and testnet data are incompatible.",
                severity="high",
                details={
                    "previous_value": previous,
                    "new_value": current,
                    "requires_fresh_install": True,
                    "data_incompatible": True,
                },
            )
        ]


DEFAULT_RULES = (
    DeprecatedFieldMigration(),
    ConditionalRequiredRule(),
    PortConflictRule(),
    NetworkConsistencyRule(),
    FormatRule(),
    MissingRecommendedRule(),
    NetworkChangeRule(),
)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[ValidationIssue]
    warnings: list[ValidationIssue]
    migrated_config: dict[str, Any]

    def summary(self) -> dict[str, Any]:
        """Issue counts grouped by type."""
        errors_by_type = defaultdict(list)
        for issue in self.errors:
            errors_by_type[issue.type.value].append(issue.to_dict())
        warnings_by_type = defaultdict(list)
        for issue in self.warnings:
            warnings_by_type[issue.type.value].append(issue.to_dict())
        return {
            "valid": self.valid,
            "total_errors": len(self.errors),
            "total_warnings": len(self.warnings),
            "errors_by_type": dict(errors_by_type),
            "warnings_by_type": dict(warnings_by_type),
            "critical_errors": sum(1 for e in self.errors if e.type in CRITICAL_TYPES),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "migrated_config": dict(self.migrated_config),
        }


class ConfigurationValidator:
    """Applies the rule pipeline to a configuration and a profile selection."""

    def __init__(
        self,
        catalog: RequirementCatalog | None = None,
        rules: Iterable[ValidationRule] | None = None,
    ):
        self.catalog = catalog or default_catalog()
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def validate(
        self,
        config: Mapping[str, Any],
        profile_keys: Iterable[str],
        previous_config: Mapping[str, Any] | InstallationState | None = None,
    ) -> ValidationResult:
        """
        Validate a configuration for the selected profiles.

        Args:
            config: Flat field -> value mapping. Never modified.
            profile_keys: Selected profile keys or legacy aliases.
            previous_config: Configuration (or installation state) of the
                existing installation, for network-change detection.

        Returns:
            ValidationResult; ``valid`` is True iff there are no errors.

        Raises:
            EmptySelection: No profile was selected.
            UnknownProfile: A profile key is not in the catalog.
        """
        profiles = self.catalog.normalize_selection(profile_keys)
        if not profiles:
            raise EmptySelection()
        if isinstance(previous_config, InstallationState):
            previous_config = previous_config.previous_config()

        context = ValidationContext(
            profiles=profiles, catalog=self.catalog, previous_config=previous_config
        )
        current = dict(config)
        for rule in self.rules:
            current, issues = rule.apply(current, context)
            context.issues.extend(issues)

        errors = [i for i in context.issues if i.blocking]
        warnings = [i for i in context.issues if not i.blocking]
        logger.debug(
            "Validated %d fields for %s: %d errors, %d warnings",
            len(current),
            ",".join(profiles),
            len(errors),
            len(warnings),
        )
        return ValidationResult(
            valid=not errors, errors=errors, warnings=warnings, migrated_config=current
        )


def validate(
    config: Mapping[str, Any],
    profile_keys: Iterable[str],
    previous_config: Mapping[str, Any] | InstallationState | None = None,
    catalog: RequirementCatalog | None = None,
) -> ValidationResult:
    return ConfigurationValidator(catalog).validate(config, profile_keys, previous_config)
