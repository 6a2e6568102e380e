import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from kaspa_planner import __version__
from kaspa_planner.aggregation import aggregate
from kaspa_planner.catalog import RequirementCatalog, default_catalog, load_catalog
from kaspa_planner.errors import PlannerError
from kaspa_planner.probe import detect_resources
from kaspa_planner.recommendation import RecommendationEngine
from kaspa_planner.resources import SystemResources
from kaspa_planner.settings import PlannerSettings, load_settings
from kaspa_planner.state import InstallationState
from kaspa_planner.ui import console, make_table, rating_text
from kaspa_planner.validator import ConfigurationValidator

logger = logging.getLogger(__name__)


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Read a configuration from a .env file or a JSON object."""
    path = Path(path)
    if not path.exists():
        raise PlannerError(f"Configuration file not found: {path}")
    if path.suffix == ".json":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise PlannerError(f"{path} must contain a JSON object")
        return data
    return {k: v for k, v in dotenv_values(path).items() if v is not None}


class PlannerCLI:
    def __init__(
        self,
        settings: PlannerSettings | None = None,
        catalog: RequirementCatalog | None = None,
        as_json: bool = False,
    ):
        self.settings = settings or PlannerSettings()
        self.catalog = catalog or default_catalog()
        self.as_json = as_json
        self.engine = RecommendationEngine(self.catalog, self.settings)

    def _resources(self, args: argparse.Namespace) -> SystemResources:
        if getattr(args, "resources", None):
            with open(args.resources, encoding="utf-8") as f:
                return SystemResources.from_dict(json.load(f))
        return detect_resources(getattr(args, "path", "/") or "/")

    def _emit_json(self, data: Any) -> None:
        console.print_json(data)

    def profiles(self, args: argparse.Namespace) -> int:
        """List catalog profiles with their standalone requirements."""
        rows = []
        for profile in self.catalog.all_profiles():
            requirement = aggregate([profile.key], self.catalog)
            rows.append((profile, requirement))

        if self.as_json:
            self._emit_json(
                [dict(p.to_dict(), requirement=r.to_dict()) for p, r in rows]
            )
            return 0

        table = make_table(
            "Profile", "Alias", "Components", "Min RAM", "Rec RAM", "Disk", "CPU",
            title="Profiles",
        )
        for profile, requirement in rows:
            table.add_row(
                f"[kaspa]{profile.key}[/]",
                profile.legacy_id or "",
                ", ".join(profile.components),
                f"{requirement.min_ram:g} GB",
                f"{requirement.recommended_ram:g} GB",
                f"{requirement.min_disk:g} GB",
                f"{requirement.min_cpu:g}",
            )
        console.print(table)
        return 0

    def aggregate(self, args: argparse.Namespace) -> int:
        """Show the deduplicated requirement of a profile set."""
        requirement = aggregate(args.profiles, self.catalog)
        if self.as_json:
            self._emit_json(requirement.to_dict())
            return 0

        table = make_table("Profile", "Min RAM", "Rec RAM", "Disk", "CPU", "Shared components")
        for item in requirement.profile_breakdown:
            table.add_row(
                item.name,
                f"{item.min_ram:g} GB",
                f"{item.recommended_ram:g} GB",
                f"{item.min_disk:g} GB",
                f"{item.min_cpu:g}",
                ", ".join(c.component for c in item.components if c.shared),
            )
        table.add_row(
            "[bold]Combined[/bold]",
            f"[bold]{requirement.min_ram:g} GB[/bold]",
            f"[bold]{requirement.recommended_ram:g} GB[/bold]",
            f"[bold]{requirement.min_disk:g} GB[/bold]",
            f"[bold]{requirement.min_cpu:g}[/bold]",
            "",
        )
        console.print(table)
        if requirement.shared_resources:
            console.info(f"Sharing saves {requirement.ram_savings:g} GB of RAM")
            for shared in requirement.shared_resources:
                console.secondary(f"{shared.name}: {', '.join(shared.used_by)}")
        return 0

    def check(self, args: argparse.Namespace) -> int:
        """Rate a profile set against this machine."""
        result = self.engine.check_selection(self._resources(args), args.profiles)
        if self.as_json:
            self._emit_json(result.to_dict())
            return 0 if result.sufficient else 1

        table = make_table("Resource", "Available", "Required", "Recommended", "Status")
        units = {"ram": "GB", "disk": "GB", "cpu": "cores"}
        for name, dim in result.rating.checks.items():
            if not dim.meets_min:
                status = "[error]below minimum[/]"
            elif not dim.meets_recommended:
                status = "[warning]below recommended[/]"
            else:
                status = "[success]ok[/]"
            table.add_row(
                name.upper(),
                f"{dim.available:g} {units[name]}",
                f"{dim.required:g} {units[name]}",
                f"{dim.recommended:g} {units[name]}",
                status,
            )
        console.print(table)
        console.print(f"Rating: {rating_text(result.rating.rating.value)}")

        for warning in result.warnings:
            console.warning(warning.message)
            if warning.recommendation:
                console.secondary(warning.recommendation)
        for hint in result.optimizations:
            console.info(f"{hint.title}: {hint.description}")
        return 0 if result.sufficient else 1

    def recommend(self, args: argparse.Namespace) -> int:
        """Suggest a profile for this machine."""
        result = self.engine.recommend(self._resources(args))
        if self.as_json:
            self._emit_json(result.to_dict())
            return 0

        primary = result.primary
        node = "remote node" if primary.use_remote_node else "local node"
        console.panel(
            f"[kaspa]{primary.profile}[/] ({node}) - {rating_text(primary.rating.value)}\n"
            f"{primary.reason}",
            title="RECOMMENDATION",
        )
        if result.alternatives:
            table = make_table("Alternative", "Rating", "Notes")
            for alt in result.alternatives:
                table.add_row(alt.profile, rating_text(alt.rating.value), alt.reason)
            console.print(table)
        for warning in result.warnings:
            console.warning(warning)
        for suggestion in result.suggestions:
            console.info(suggestion)
        return 0

    def autoconfig(self, args: argparse.Namespace) -> int:
        """Print environment variables for the recommended profile."""
        config = self.engine.generate_auto_configuration(self._resources(args))
        if self.as_json:
            self._emit_json(config.to_dict())
            return 0
        if args.env:
            for key, value in config.env_vars.items():
                print(f"{key}={value}")
            return 0

        console.info(f"Profile: {config.profile}")
        for key, value in config.env_vars.items():
            console.print(f"  {key}={value}")
        for warning in config.warnings:
            console.warning(warning)
        for suggestion in config.suggestions:
            console.secondary(suggestion)
        return 0

    def validate(self, args: argparse.Namespace) -> int:
        """Validate a configuration file for the selected profiles."""
        config = load_config_file(args.config)
        previous = None
        if args.state:
            previous = InstallationState.load(args.state)
            if previous is None:
                console.warning(f"Ignoring unreadable installation state: {args.state}")
        elif args.previous:
            previous = load_config_file(args.previous)

        result = ConfigurationValidator(self.catalog).validate(config, args.profiles, previous)
        if self.as_json:
            self._emit_json(dict(result.to_dict(), summary=result.summary()))
            return 0 if result.valid else 1

        for issue in result.errors:
            console.error(f"{issue.field}: {issue.message}", details=issue.type.value)
        for issue in result.warnings:
            console.warning(f"{issue.field}: {issue.message}")
        if result.valid:
            console.success(
                f"Configuration valid ({len(result.warnings)} warning(s))"
            )
        else:
            console.error(f"Configuration invalid: {len(result.errors)} error(s)")
        return 0 if result.valid else 1

    def resources(self, args: argparse.Namespace) -> int:
        """Show the detected resources."""
        resources = self._resources(args)
        if self.as_json:
            self._emit_json(resources.to_dict())
            return 0
        table = make_table("Resource", "Value")
        table.add_row("Platform", resources.platform)
        table.add_row("RAM (available)", f"{resources.memory.available_gb:.1f} GB")
        table.add_row("RAM (effective)", f"{resources.effective_ram_gb:.1f} GB")
        table.add_row("CPU", f"{resources.cpu.count} x {resources.cpu.model}")
        table.add_row("Disk (free)", f"{resources.disk.free_gb:.1f} GB {resources.disk.type}")
        if resources.docker_memory_limit_gb is not None:
            table.add_row("Docker limit", f"{resources.docker_memory_limit_gb:.1f} GB")
        console.print(table)
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kaspa-planner",
        description="Plan and validate Kaspa All-in-One deployments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kaspa-planner profiles
  kaspa-planner aggregate core explorer
  kaspa-planner check core explorer --resources machine.json
  kaspa-planner recommend
  kaspa-planner autoconfig --env > .env
  kaspa-planner validate .env core mining --state .kaspa-aio/installation-state.json

Environment Variables:
  KASPA_PLANNER_CONFIG   Settings file (default ~/.kaspa-planner/planner.yaml)
  KASPA_PLANNER_*        Override individual settings
        """,
    )
    parser.add_argument("--version", "-V", action="version", version=f"kaspa-planner {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    parser.add_argument("--settings", help="Planner settings YAML file")
    parser.add_argument("--catalog", help="Requirement catalog YAML file")

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument("--json", action="store_true", help="Print JSON instead of tables")

    probe = argparse.ArgumentParser(add_help=False)
    probe.add_argument("--resources", help="Read resources from a JSON file instead of probing")
    probe.add_argument("--path", default="/", help="Filesystem path to measure (default: /)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("profiles", parents=[output], help="List profiles")

    aggregate_parser = subparsers.add_parser(
        "aggregate", parents=[output], help="Combined requirement of profiles"
    )
    aggregate_parser.add_argument("profiles", nargs="+", help="Profile keys or legacy ids")

    check_parser = subparsers.add_parser(
        "check", parents=[output, probe], help="Rate profiles against this machine"
    )
    check_parser.add_argument("profiles", nargs="+", help="Profile keys or legacy ids")

    subparsers.add_parser("recommend", parents=[output, probe], help="Suggest a profile")

    autoconfig_parser = subparsers.add_parser(
        "autoconfig", parents=[output, probe], help="Environment for the suggested profile"
    )
    autoconfig_parser.add_argument("--env", action="store_true", help="Print KEY=VALUE lines")

    validate_parser = subparsers.add_parser(
        "validate", parents=[output], help="Validate a configuration file"
    )
    validate_parser.add_argument("config", help=".env or JSON configuration file")
    validate_parser.add_argument("profiles", nargs="+", help="Selected profiles")
    previous = validate_parser.add_mutually_exclusive_group()
    previous.add_argument("--previous", help="Previous configuration (.env or JSON)")
    previous.add_argument("--state", help="Installation state JSON of the existing install")

    subparsers.add_parser("resources", parents=[output, probe], help="Show detected resources")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = load_settings(args.settings)
        catalog_path = args.catalog or settings.catalog_path
        catalog = load_catalog(catalog_path) if catalog_path else None
        cli = PlannerCLI(settings, catalog, as_json=getattr(args, "json", False))
        handler = getattr(cli, args.command.replace("-", "_"))
        return handler(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled", file=sys.stderr)
        return 130
    except PlannerError as e:
        console.error(str(e))
        return 1
    except (OSError, json.JSONDecodeError) as e:
        console.error(f"Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
