"""
Tests for the requirement catalog.
"""

from types import MappingProxyType

import pytest
import yaml

from kaspa_planner.catalog import (
    Component,
    ComponentCategory,
    Profile,
    RequirementCatalog,
    default_catalog,
    load_catalog,
)
from kaspa_planner.errors import SettingsError, UnknownComponent, UnknownProfile


class TestLookups:
    """Tests for component and profile lookups."""

    def test_requirements_of_known_component(self, catalog):
        node = catalog.requirements_of("kaspa-node")

        assert node.name == "Kaspa Node"
        assert node.min_ram == 4
        assert node.recommended_ram == 8
        assert node.category is ComponentCategory.NODE

    def test_requirements_of_unknown_component(self, catalog):
        with pytest.raises(UnknownComponent, match="Unknown component: nope") as exc:
            catalog.requirements_of("nope")
        assert exc.value.key == "nope"

    def test_components_of_keeps_order(self, catalog):
        assert catalog.components_of("core") == ("dashboard", "nginx", "kaspa-node")

    def test_components_of_unknown_profile(self, catalog):
        with pytest.raises(UnknownProfile):
            catalog.components_of("full-node-plus")

    def test_unknown_errors_are_lookup_errors(self, catalog):
        with pytest.raises(LookupError):
            catalog.profile("missing")

    def test_legacy_alias_resolves(self, catalog):
        assert catalog.resolve_profile_key("core-local") == "core"
        assert catalog.profile("indexer-services").key == "explorer"
        assert catalog.profile("kaspa-user-applications").key == "production"
        assert catalog.profile("archive-node").key == "archive"

    def test_all_profiles_in_catalog_order(self, catalog):
        keys = [p.key for p in catalog.all_profiles()]
        assert keys == ["core", "mining", "production", "explorer", "archive"]

    def test_all_components(self, catalog):
        keys = {c.key for c in catalog.all_components()}
        assert {"dashboard", "nginx", "kaspa-node", "timescaledb", "kaspa-stratum"} <= keys


class TestReverseIndex:
    """Tests for component -> owning profiles."""

    def test_shared_component_owned_by_every_profile(self, catalog):
        assert catalog.owners_of("dashboard") == (
            "core",
            "mining",
            "production",
            "explorer",
            "archive",
        )

    def test_single_owner(self, catalog):
        assert catalog.owners_of("kaspa-stratum") == ("mining",)

    def test_unknown_component(self, catalog):
        with pytest.raises(UnknownComponent):
            catalog.owners_of("nope")

    def test_profiles_with_component_filters_selection(self, catalog):
        result = catalog.profiles_with_component(["explorer", "core-local", "mining"], "timescaledb")
        assert result == ("explorer",)

    def test_has_category(self, catalog):
        assert catalog.has_category("explorer", ComponentCategory.INDEXER)
        assert not catalog.has_category("core", ComponentCategory.INDEXER)
        assert catalog.has_category("mining", ComponentCategory.MINING)


class TestImmutability:
    """The catalog must not change after construction."""

    def test_component_is_frozen(self, catalog):
        with pytest.raises(AttributeError):
            catalog.requirements_of("nginx").min_ram = 100

    def test_env_defaults_read_only(self, catalog):
        env = catalog.profile("core").env_defaults
        assert isinstance(env, MappingProxyType)
        with pytest.raises(TypeError):
            env["KASPA_NODE_MEMORY_LIMIT"] = "1g"

    def test_default_catalog_is_cached(self):
        assert default_catalog() is default_catalog()

    def test_profiles_are_hashable(self, catalog):
        core = catalog.profile("core")
        profiles = {core, catalog.profile("core-local"), catalog.profile("explorer")}

        assert hash(core) == hash(catalog.profile("core"))
        assert len(profiles) == 2


class TestConstruction:
    """Tests for building catalogs from data."""

    def test_profile_with_unknown_component_rejected(self):
        components = [Component("a", "A", 1, 1, 1, 1)]
        profiles = [Profile("p", "P", ("a", "b"))]
        with pytest.raises(UnknownComponent):
            RequirementCatalog(components, profiles)

    def test_alias_collision_rejected(self):
        components = [Component("a", "A", 1, 1, 1, 1)]
        profiles = [Profile("p", "P", ("a",)), Profile("q", "Q", ("a",), legacy_id="p")]
        with pytest.raises(SettingsError, match="collides"):
            RequirementCatalog(components, profiles)

    def test_recommended_below_min_rejected(self):
        with pytest.raises(SettingsError):
            Component("a", "A", min_ram=2, recommended_ram=1, min_disk=0, min_cpu=0)

    def test_from_dict_round_trip(self, catalog):
        rebuilt = RequirementCatalog.from_dict(catalog.to_dict())

        assert [p.key for p in rebuilt.all_profiles()] == [p.key for p in catalog.all_profiles()]
        assert rebuilt.requirements_of("archive-db") == catalog.requirements_of("archive-db")
        assert rebuilt.profile("core-local").env_defaults == catalog.profile("core").env_defaults

    def test_from_dict_malformed(self):
        with pytest.raises(SettingsError, match="Malformed"):
            RequirementCatalog.from_dict({"components": {"a": {"name": "A"}}})

    def test_load_catalog_yaml(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "components": {
                        "node": {"min_ram": 2, "recommended_ram": 4, "min_disk": 10, "min_cpu": 1},
                        "ui": {"min_ram": 0.5, "min_disk": 1, "min_cpu": 0.5},
                    },
                    "profiles": {
                        "small": {"components": ["node", "ui"], "tier": 1, "legacy_id": "tiny"},
                    },
                }
            )
        )

        loaded = load_catalog(path)

        assert loaded.components_of("tiny") == ("node", "ui")
        assert loaded.requirements_of("ui").recommended_ram == 0.5

    def test_load_catalog_invalid_yaml(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("components: [unclosed")
        with pytest.raises(SettingsError, match="Invalid YAML"):
            load_catalog(path)
