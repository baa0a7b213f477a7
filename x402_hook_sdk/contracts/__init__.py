import os
import json
from functools import lru_cache

HOOK = "Hook"
SETTLEMENT_ROUTER = "SettlementRouter"
EIP3009_TOKEN = "EIP3009Token"


@lru_cache(maxsize=None)
def _read_abi(contract_name: str) -> tuple:
    abi_path = os.path.join(os.path.dirname(__file__), "abis", contract_name)

    if not os.path.exists(abi_path):
        raise FileNotFoundError(f"ABI for {contract_name} not found at {abi_path}")

    with open(abi_path, "r") as f:
        artifact = json.load(f)
    # Accepts both a raw ABI list and a build artifact with an "abi" key
    if isinstance(artifact, dict):
        artifact = artifact.get("abi", [])
    return tuple(artifact)


def load_abi(contract_name: str) -> list:
    """
    Loads the ABI for a given contract name from the package resources.
    """
    if not contract_name.endswith(".json"):
        contract_name += ".json"
    return list(_read_abi(contract_name))


def event_names(contract_name: str) -> list:
    return [item["name"] for item in load_abi(contract_name) if item.get("type") == "event"]
