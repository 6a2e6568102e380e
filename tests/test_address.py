"""
Tests for Kaspa address checks.
"""

import pytest

from kaspa_planner.address import (
    PREFIX_NETWORKS,
    detect_network_from_address,
    network_family,
    validate_kaspa_address,
)

MAINNET_ADDRESS = "kaspa:" + "q" * 61
TESTNET_ADDRESS = "kaspatest:" + "q" * 61


class TestValidateAddress:
    def test_valid_mainnet(self):
        check = validate_kaspa_address(MAINNET_ADDRESS)

        assert check.valid is True
        assert check.network == "mainnet"
        assert check.normalized == MAINNET_ADDRESS

    def test_case_and_whitespace_normalized(self):
        check = validate_kaspa_address("  " + MAINNET_ADDRESS.upper() + " ")
        assert check.valid is True
        assert check.normalized == MAINNET_ADDRESS

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_missing(self, value):
        check = validate_kaspa_address(value)
        assert check.valid is False
        assert check.error == "Address is required"

    def test_unknown_prefix(self):
        check = validate_kaspa_address("bitcoin:" + "q" * 61)
        assert check.valid is False
        assert "prefix" in check.error

    def test_non_bech32_characters(self):
        # 'b', 'i', 'o' and '1' are outside the bech32 alphabet
        check = validate_kaspa_address("kaspa:" + "b" * 61)
        assert check.valid is False
        assert "bech32" in check.error

    def test_too_long(self):
        check = validate_kaspa_address("kaspa:" + "q" * 90)
        assert check.valid is False
        assert "length" in check.error

    def test_network_must_match_prefix(self):
        check = validate_kaspa_address(TESTNET_ADDRESS, network="mainnet")

        assert check.valid is False
        assert check.network == "testnet"
        assert "kaspa:" in check.error

    def test_testnet_variant_accepts_testnet_prefix(self):
        assert validate_kaspa_address(TESTNET_ADDRESS, network="testnet-11").valid is True


class TestNetworkDetection:
    def test_detect(self):
        assert detect_network_from_address(MAINNET_ADDRESS) == "mainnet"
        assert detect_network_from_address(TESTNET_ADDRESS) == "testnet"
        assert detect_network_from_address("kaspadev:qqq") == "devnet"
        assert detect_network_from_address("nope") is None
        assert detect_network_from_address(None) is None

    def test_shared_prefix_reports_first_network(self):
        assert PREFIX_NETWORKS["kaspatest:"] == "testnet"

    @pytest.mark.parametrize(
        "network, family",
        [
            ("testnet", "testnet"),
            ("testnet-10", "testnet"),
            ("testnet-11", "testnet"),
            ("mainnet", "mainnet"),
            (None, None),
        ],
    )
    def test_network_family(self, network, family):
        assert network_family(network) == family
