"""
Kaspa address checks.

Structural validation only (prefix, bech32 charset, length). Checksum
verification is left to wallet tooling.
"""

import re
from dataclasses import dataclass

NETWORK_PREFIXES = {
    "mainnet": "kaspa:",
    "testnet": "kaspatest:",
    "testnet-10": "kaspatest:",
    "testnet-11": "kaspatest:",
    "devnet": "kaspadev:",
    "simnet": "kaspasim:",
}

# First network listed per prefix is the one reported on detection.
PREFIX_NETWORKS = {}
for _network, _prefix in NETWORK_PREFIXES.items():
    PREFIX_NETWORKS.setdefault(_prefix, _network)

VALID_PREFIXES = tuple(PREFIX_NETWORKS)

BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
ADDRESS_PATTERN = re.compile(rf"^(kaspa|kaspatest|kaspadev|kaspasim):[{BECH32_CHARSET}]{{58,}}$")

MIN_ADDRESS_LENGTH = 64
MAX_ADDRESS_LENGTH = 90


@dataclass(frozen=True)
class AddressCheck:
    valid: bool
    network: str | None = None
    error: str | None = None
    normalized: str | None = None


def network_family(network: str | None) -> str | None:
    """Collapse testnet variants (``testnet-10``, ``testnet-11``) to ``testnet``."""
    if network and network.startswith("testnet"):
        return "testnet"
    return network


def detect_network_from_address(address) -> str | None:
    if not address or not isinstance(address, str):
        return None
    lowered = address.strip().lower()
    for prefix, network in PREFIX_NETWORKS.items():
        if lowered.startswith(prefix):
            return network
    return None


def validate_kaspa_address(address, network: str | None = None) -> AddressCheck:
    """
    Check an address' prefix, charset and length.

    Args:
        address: Address string as entered by the operator.
        network: When given, the address prefix must belong to it.

    Returns:
        AddressCheck with ``valid`` and, on failure, a display message.
    """
    if not address or not isinstance(address, str):
        return AddressCheck(valid=False, error="Address is required")

    normalized = address.strip().lower()
    if not normalized.startswith(VALID_PREFIXES):
        return AddressCheck(
            valid=False,
            error="Invalid address prefix. Must start with one of: " + ", ".join(VALID_PREFIXES),
        )

    detected = detect_network_from_address(normalized)

    if network:
        expected = NETWORK_PREFIXES.get(network)
        if expected and not normalized.startswith(expected):
            return AddressCheck(
                valid=False,
                network=detected,
                error=f"Address is for {detected}, but configuration is set to {network}. "
                f"Please use a {expected} address.",
            )

    if not ADDRESS_PATTERN.match(normalized):
        return AddressCheck(
            valid=False,
            network=detected,
            error="Invalid address format. Kaspa addresses use bech32 encoding "
            f"(characters: {BECH32_CHARSET}).",
        )

    if not MIN_ADDRESS_LENGTH <= len(normalized) <= MAX_ADDRESS_LENGTH:
        return AddressCheck(
            valid=False,
            network=detected,
            error=f"Invalid address length: {len(normalized)}. "
            f"Expected {MIN_ADDRESS_LENGTH}-{MAX_ADDRESS_LENGTH} characters.",
        )

    return AddressCheck(valid=True, network=detected, normalized=normalized)
