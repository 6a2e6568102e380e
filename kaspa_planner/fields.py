"""
Configuration field registry.

Which environment keys hold ports, addresses and the network, which
component owns each of them, and which keys have been renamed or
removed over time.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from kaspa_planner.catalog import NODE_COMPONENT, RequirementCatalog


class FieldKind(Enum):
    PORT = "port"
    ADDRESS = "address"
    NETWORK = "network"
    FLAG = "flag"
    TEXT = "text"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    kind: FieldKind
    owner: str | None = None
    default: str | None = None


NETWORK_FIELD = "KASPA_NETWORK"
DEFAULT_NETWORK = "mainnet"
VALID_NETWORKS = ("mainnet", "testnet", "testnet-10", "testnet-11")

WALLET_FLAG = "WALLET_CONNECTIVITY_ENABLED"
MINING_ADDRESS = "MINING_ADDRESS"

PORT_MIN = 1024
PORT_MAX = 65535

FIELDS = (
    FieldSpec("KASPA_NODE_RPC_PORT", "Kaspa node RPC port", FieldKind.PORT, NODE_COMPONENT, "16110"),
    FieldSpec("KASPA_NODE_P2P_PORT", "Kaspa node P2P port", FieldKind.PORT, NODE_COMPONENT, "16111"),
    FieldSpec(
        "KASPA_NODE_WRPC_BORSH_PORT", "wRPC Borsh port", FieldKind.PORT, NODE_COMPONENT, "17110"
    ),
    FieldSpec(
        "KASPA_NODE_WRPC_JSON_PORT", "wRPC JSON port", FieldKind.PORT, NODE_COMPONENT, "18110"
    ),
    FieldSpec("DASHBOARD_PORT", "Dashboard port", FieldKind.PORT, "dashboard", "8080"),
    FieldSpec("TIMESCALEDB_PORT", "TimescaleDB port", FieldKind.PORT, "timescaledb", "5432"),
    FieldSpec("KASIA_APP_PORT", "Kasia app port", FieldKind.PORT, "kasia-app", "3002"),
    FieldSpec("KSOCIAL_APP_PORT", "K-Social app port", FieldKind.PORT, "k-social-app", "3003"),
    FieldSpec("STRATUM_PORT", "Stratum port", FieldKind.PORT, "kaspa-stratum", "5555"),
    FieldSpec(MINING_ADDRESS, "Mining address", FieldKind.ADDRESS, NODE_COMPONENT),
    FieldSpec(NETWORK_FIELD, "Network", FieldKind.NETWORK, None, DEFAULT_NETWORK),
    FieldSpec(WALLET_FLAG, "Wallet connectivity", FieldKind.FLAG, NODE_COMPONENT),
    FieldSpec("PUBLIC_NODE", "Public node", FieldKind.FLAG, NODE_COMPONENT),
    FieldSpec("EXTERNAL_IP", "External IP", FieldKind.TEXT, NODE_COMPONENT),
)

FIELDS_BY_KEY = {f.key: f for f in FIELDS}

# deprecated key -> current key
DEPRECATED_FIELDS = {
    "WALLET_ENABLED": WALLET_FLAG,
    "KASPA_WALLET_ENABLED": WALLET_FLAG,
    "KASPA_RPC_PORT": "KASPA_NODE_RPC_PORT",
    "KASPA_P2P_PORT": "KASPA_NODE_P2P_PORT",
    "STRATUM_MINING_ADDRESS": MINING_ADDRESS,
}

# Wallet secrets must never reach the backend; these keys are stripped.
REMOVED_FIELDS = {
    "WALLET_SEED_PHRASE": "Seed phrases are handled client-side only",
    "WALLET_PASSWORD": "Wallet encryption is handled client-side only",
    "WALLET_FILE": "Wallet files must be imported client-side",
    "WALLET_PRIVATE_KEY": "Private keys must never be sent to the server",
    "WALLET_PATH": "Wallet paths are no longer used",
}

# field -> (trigger field, reason)
CONDITIONAL_REQUIRED = {
    "KASPA_NODE_WRPC_BORSH_PORT": (WALLET_FLAG, "wallet connectivity is enabled"),
    MINING_ADDRESS: (WALLET_FLAG, "wallet connectivity is enabled"),
}

_TRUTHY = {"true", "1", "yes", "on"}


def is_truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def fields_of_kind(kind: FieldKind) -> list[FieldSpec]:
    return [f for f in FIELDS if f.kind is kind]


def relevant_fields(
    kind: FieldKind, profile_keys: Iterable[str], catalog: RequirementCatalog
) -> list[FieldSpec]:
    """Fields of a kind whose owning component is in one of the selected profiles."""
    components = set()
    for key in profile_keys:
        components.update(catalog.components_of(key))
    return [f for f in fields_of_kind(kind) if f.owner is None or f.owner in components]


def parse_port(value) -> int | None:
    """Numeric port value, or None when the value is blank or not an integer."""
    if is_blank(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def configured_network(config) -> str:
    value = config.get(NETWORK_FIELD)
    if is_blank(value):
        return DEFAULT_NETWORK
    return str(value).strip().lower()
