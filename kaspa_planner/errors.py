"""Exceptions raised by the deployment planner.

Only caller contract violations are raised. Problems with a user's
configuration (missing fields, port clashes, wrong network) are reported
as ValidationIssue objects instead.
"""


class PlannerError(Exception):
    """Base class for planner faults."""


class UnknownComponent(PlannerError, LookupError):
    """A component key is not present in the requirement catalog."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown component: {key}")


class UnknownProfile(PlannerError, LookupError):
    """A profile key (or legacy alias) is not present in the catalog."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown profile: {key}")


class EmptySelection(PlannerError, ValueError):
    """No profiles were selected."""

    def __init__(self, message: str = "At least one profile must be selected"):
        super().__init__(message)


class SettingsError(PlannerError, ValueError):
    """Planner settings are malformed."""
