"""
Tests for the configuration validator rule pipeline.
"""

import pytest

from kaspa_planner.errors import EmptySelection, UnknownProfile
from kaspa_planner.state import InstallationState
from kaspa_planner.validator import (
    ConditionalRequiredRule,
    ConfigurationValidator,
    DeprecatedFieldMigration,
    IssueType,
    PortConflictRule,
    ValidationContext,
    migrate_config,
    validate,
)

MAINNET_ADDRESS = "kaspa:" + "q" * 61
TESTNET_ADDRESS = "kaspatest:" + "q" * 61


def _of_type(issues, issue_type):
    return [i for i in issues if i.type is issue_type]


class TestMigration:
    """Deprecated-field migration."""

    def test_deprecated_only_is_moved(self):
        result = validate({"WALLET_ENABLED": True}, ["core"])

        assert result.migrated_config["WALLET_CONNECTIVITY_ENABLED"] is True
        assert "WALLET_ENABLED" not in result.migrated_config
        warning = _of_type(result.warnings, IssueType.DEPRECATION)[0]
        assert warning.field == "WALLET_ENABLED"
        assert "WALLET_CONNECTIVITY_ENABLED" in warning.message

    def test_both_present_modern_wins(self):
        config = {"WALLET_ENABLED": "false", "WALLET_CONNECTIVITY_ENABLED": "true"}
        migrated = migrate_config(config)

        assert migrated["WALLET_CONNECTIVITY_ENABLED"] == "true"
        assert migrated["WALLET_ENABLED"] == "false"

    def test_both_present_warns_ignored(self):
        config = {
            "KASPA_RPC_PORT": "16200",
            "KASPA_NODE_RPC_PORT": "16110",
        }
        result = validate(config, ["core"])
        warning = _of_type(result.warnings, IssueType.DEPRECATION)[0]

        assert "ignored" in warning.message
        assert result.migrated_config["KASPA_NODE_RPC_PORT"] == "16110"

    def test_input_not_mutated(self):
        config = {"WALLET_ENABLED": True, "WALLET_SEED_PHRASE": "abandon abandon"}
        snapshot = dict(config)

        validate(config, ["core"])

        assert config == snapshot

    def test_removed_secrets_stripped(self):
        migrated = migrate_config(
            {"WALLET_SEED_PHRASE": "x", "WALLET_PRIVATE_KEY": "y", "KASPA_NETWORK": "mainnet"}
        )
        assert migrated == {"KASPA_NETWORK": "mainnet"}

    @pytest.mark.parametrize(
        "config",
        [
            {},
            {"WALLET_ENABLED": True},
            {"WALLET_ENABLED": "1", "KASPA_WALLET_ENABLED": "0"},
            {"WALLET_ENABLED": False, "WALLET_CONNECTIVITY_ENABLED": True},
            {"KASPA_RPC_PORT": "16110", "KASPA_P2P_PORT": "16111", "WALLET_PASSWORD": "pw"},
            {"STRATUM_MINING_ADDRESS": MAINNET_ADDRESS, "MINING_ADDRESS": ""},
            {"WALLET_ENABLED": ""},
        ],
    )
    def test_idempotent(self, config):
        once = migrate_config(config)
        assert migrate_config(once) == once

    def test_blank_modern_key_is_filled(self):
        migrated = migrate_config({"STRATUM_MINING_ADDRESS": MAINNET_ADDRESS, "MINING_ADDRESS": ""})
        assert migrated == {"MINING_ADDRESS": MAINNET_ADDRESS}

    def test_later_rules_see_migrated_values(self):
        result = validate({"KASPA_RPC_PORT": 16110, "KASPA_NODE_P2P_PORT": 16110}, ["core"])

        conflicts = _of_type(result.errors, IssueType.PORT_CONFLICT)
        assert len(conflicts) == 1
        assert {conflicts[0].field, conflicts[0].details["conflicts_with"]} == {
            "KASPA_NODE_RPC_PORT",
            "KASPA_NODE_P2P_PORT",
        }


class TestConditionalRequired:
    def test_wallet_requires_fields(self):
        result = validate({"WALLET_CONNECTIVITY_ENABLED": "true"}, ["core"])

        required = {i.field for i in _of_type(result.errors, IssueType.REQUIRED)}
        assert required == {"KASPA_NODE_WRPC_BORSH_PORT", "MINING_ADDRESS"}
        assert result.valid is False
        assert all("WALLET_CONNECTIVITY_ENABLED" in i.message for i in result.errors)

    def test_satisfied(self):
        config = {
            "WALLET_CONNECTIVITY_ENABLED": True,
            "KASPA_NODE_WRPC_BORSH_PORT": 17110,
            "MINING_ADDRESS": MAINNET_ADDRESS,
        }
        assert validate(config, ["core"]).valid is True

    def test_not_triggered_when_disabled(self):
        assert validate({"WALLET_CONNECTIVITY_ENABLED": "false"}, ["core"]).errors == []

    def test_rule_in_isolation(self, catalog):
        context = ValidationContext(profiles=("core",), catalog=catalog)
        issues = ConditionalRequiredRule().evaluate(
            {"WALLET_CONNECTIVITY_ENABLED": "yes", "MINING_ADDRESS": MAINNET_ADDRESS}, context
        )
        assert [i.field for i in issues] == ["KASPA_NODE_WRPC_BORSH_PORT"]


class TestPortConflicts:
    def test_same_port_single_error(self):
        result = validate({"KASPA_NODE_RPC_PORT": 16110, "KASPA_NODE_P2P_PORT": 16110}, ["core"])

        conflicts = _of_type(result.errors, IssueType.PORT_CONFLICT)
        assert len(conflicts) == 1
        issue = conflicts[0]
        assert issue.details["port"] == 16110
        assert "KASPA_NODE_RPC_PORT" in issue.message
        assert "KASPA_NODE_P2P_PORT" in issue.message

    def test_string_and_int_compare_numerically(self):
        result = validate({"KASPA_NODE_RPC_PORT": "16110", "DASHBOARD_PORT": 16110}, ["core"])
        assert len(_of_type(result.errors, IssueType.PORT_CONFLICT)) == 1

    def test_irrelevant_profile_ports_ignored(self):
        config = {"KASPA_NODE_RPC_PORT": 5555, "STRATUM_PORT": 5555}

        assert _of_type(validate(config, ["core"]).errors, IssueType.PORT_CONFLICT) == []
        assert len(_of_type(validate(config, ["mining"]).errors, IssueType.PORT_CONFLICT)) == 1

    def test_one_error_per_duplicate(self, catalog):
        context = ValidationContext(profiles=("explorer",), catalog=catalog)
        issues = PortConflictRule().evaluate(
            {"KASPA_NODE_RPC_PORT": 9000, "DASHBOARD_PORT": 9000, "TIMESCALEDB_PORT": 9000},
            context,
        )

        assert len(issues) == 2
        assert all(i.details["conflicts_with"] == "KASPA_NODE_RPC_PORT" for i in issues)

    def test_distinct_ports_ok(self):
        config = {"KASPA_NODE_RPC_PORT": 16110, "KASPA_NODE_P2P_PORT": 16111}
        assert validate(config, ["core"]).valid is True


class TestNetworkConsistency:
    def test_testnet_address_on_mainnet(self):
        result = validate({"KASPA_NETWORK": "mainnet", "MINING_ADDRESS": TESTNET_ADDRESS}, ["core"])

        assert result.valid is True
        mismatch = _of_type(result.warnings, IssueType.NETWORK_MISMATCH)
        assert len(mismatch) == 1
        assert "testnet" in mismatch[0].message
        assert "mainnet" in mismatch[0].message

    def test_network_defaults_to_mainnet(self):
        result = validate({"MINING_ADDRESS": TESTNET_ADDRESS}, ["core"])
        assert len(_of_type(result.warnings, IssueType.NETWORK_MISMATCH)) == 1

    def test_testnet_variants_match_testnet_prefix(self):
        for network in ("testnet", "testnet-10", "testnet-11"):
            result = validate({"KASPA_NETWORK": network, "MINING_ADDRESS": TESTNET_ADDRESS}, ["core"])
            assert _of_type(result.warnings, IssueType.NETWORK_MISMATCH) == []

    def test_mainnet_address_on_testnet(self):
        result = validate({"KASPA_NETWORK": "testnet-10", "MINING_ADDRESS": MAINNET_ADDRESS}, ["core"])
        assert len(_of_type(result.warnings, IssueType.NETWORK_MISMATCH)) == 1

    def test_unknown_network_reported_once(self):
        result = validate({"KASPA_NETWORK": "foonet", "MINING_ADDRESS": MAINNET_ADDRESS}, ["core"])

        assert len(_of_type(result.errors, IssueType.ENUM)) == 1
        assert _of_type(result.warnings, IssueType.NETWORK_MISMATCH) == []


class TestFormat:
    def test_malformed_address(self):
        result = validate({"MINING_ADDRESS": "kaspa:abc"}, ["core"])

        errors = _of_type(result.errors, IssueType.KASPA_ADDRESS)
        assert len(errors) == 1
        assert result.valid is False

    def test_wrong_prefix(self):
        result = validate({"MINING_ADDRESS": "bitcoin:" + "q" * 61}, ["core"])
        assert "prefix" in _of_type(result.errors, IssueType.KASPA_ADDRESS)[0].message

    @pytest.mark.parametrize("value", ["80", "70000", "abc", "16110.5"])
    def test_port_out_of_range(self, value):
        result = validate({"KASPA_NODE_RPC_PORT": value}, ["core"])
        assert len(_of_type(result.errors, IssueType.RANGE)) == 1

    def test_unknown_network(self):
        result = validate({"KASPA_NETWORK": "foonet"}, ["core"])
        assert len(_of_type(result.errors, IssueType.ENUM)) == 1


class TestMissingRecommended:
    def test_mining_without_address(self):
        result = validate({}, ["mining"])

        warning = _of_type(result.warnings, IssueType.MISSING_RECOMMENDED)[0]
        assert warning.field == "MINING_ADDRESS"
        assert result.valid is True

    def test_no_warning_without_mining_profile(self):
        assert _of_type(validate({}, ["core"]).warnings, IssueType.MISSING_RECOMMENDED) == []

    def test_not_repeated_when_already_required(self):
        result = validate({"WALLET_CONNECTIVITY_ENABLED": True}, ["mining"])

        assert _of_type(result.warnings, IssueType.MISSING_RECOMMENDED) == []
        assert "MINING_ADDRESS" in {i.field for i in result.errors}

    def test_public_node_without_external_ip(self):
        result = validate({"PUBLIC_NODE": "true"}, ["core"])
        fields = {i.field for i in _of_type(result.warnings, IssueType.MISSING_RECOMMENDED)}
        assert fields == {"EXTERNAL_IP"}


class TestNetworkChange:
    def test_network_change_warning(self):
        result = validate(
            {"KASPA_NETWORK": "testnet"}, ["core"], previous_config={"KASPA_NETWORK": "mainnet"}
        )

        warning = _of_type(result.warnings, IssueType.NETWORK_CHANGE)[0]
        assert warning.severity == "high"
        assert warning.details["previous_value"] == "mainnet"
        assert warning.details["new_value"] == "testnet"
        assert warning.details["requires_fresh_install"] is True
        assert warning.details["data_incompatible"] is True
        assert result.valid is True

    def test_previous_from_installation_state(self):
        state = InstallationState.from_dict({"configuration": {"network": "testnet-10"}})
        result = validate({"KASPA_NETWORK": "mainnet"}, ["core"], previous_config=state)

        warning = _of_type(result.warnings, IssueType.NETWORK_CHANGE)[0]
        assert warning.details["previous_value"] == "testnet-10"

    def test_same_network_no_warning(self):
        result = validate({}, ["core"], previous_config={"KASPA_NETWORK": "mainnet"})
        assert _of_type(result.warnings, IssueType.NETWORK_CHANGE) == []

    def test_no_previous_no_warning(self):
        result = validate({"KASPA_NETWORK": "testnet"}, ["core"])
        assert _of_type(result.warnings, IssueType.NETWORK_CHANGE) == []

    def test_distinct_from_mismatch(self):
        assert IssueType.NETWORK_CHANGE != IssueType.NETWORK_MISMATCH


class TestValidatorContract:
    def test_empty_profiles(self):
        with pytest.raises(EmptySelection):
            validate({}, [])

    def test_unknown_profile(self):
        with pytest.raises(UnknownProfile):
            validate({}, ["core", "galaxy"])

    def test_legacy_alias_accepted(self):
        assert validate({}, ["core-local"]).valid is True

    def test_warnings_never_affect_validity(self):
        result = validate(
            {"WALLET_ENABLED": True, "KASPA_NODE_WRPC_BORSH_PORT": 17110, "MINING_ADDRESS": TESTNET_ADDRESS},
            ["mining"],
            previous_config={"KASPA_NETWORK": "testnet"},
        )

        assert result.errors == []
        assert result.warnings
        assert result.valid is True

    def test_custom_rule_list(self, catalog):
        validator = ConfigurationValidator(catalog, rules=[DeprecatedFieldMigration()])
        result = validator.validate({"WALLET_ENABLED": True}, ["core"])

        assert result.errors == []
        assert result.migrated_config == {"WALLET_CONNECTIVITY_ENABLED": True}

    def test_summary_groups_by_type(self):
        result = validate(
            {"WALLET_ENABLED": True, "KASPA_NODE_RPC_PORT": 16110, "KASPA_NODE_P2P_PORT": 16110},
            ["core"],
        )
        summary = result.summary()

        assert summary["valid"] is False
        assert summary["total_errors"] == len(result.errors)
        assert set(summary["errors_by_type"]) == {"required", "port_conflict"}
        assert summary["critical_errors"] == 3
        assert "deprecation" in summary["warnings_by_type"]

    def test_issue_to_dict(self):
        result = validate({"KASPA_NODE_RPC_PORT": 16110, "KASPA_NODE_P2P_PORT": 16110}, ["core"])
        data = result.errors[0].to_dict()

        assert data["type"] == "port_conflict"
        assert data["port"] == 16110
