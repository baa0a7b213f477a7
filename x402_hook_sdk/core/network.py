from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping, Optional

from ..errors import ConfigurationError


@dataclass(frozen=True)
class NetworkSettings:
    chain_id: int
    rpc_url: str
    usdc_address: str
    block_explorer: str

    def to_dict(self) -> dict:
        return {
            "chainId": self.chain_id,
            "rpcUrl": self.rpc_url,
            "usdcAddress": self.usdc_address,
            "blockExplorer": self.block_explorer,
        }


# Default settings for the supported Cronos networks
NETWORK_CONFIGS: Mapping[str, NetworkSettings] = MappingProxyType({
    "cronos": NetworkSettings(
        chain_id=25,
        rpc_url="https://evm.cronos.org",
        usdc_address="0xc21223249CA28397B4B6541dfFaEcC539BfF0c59",
        block_explorer="https://explorer.cronos.org",
    ),
    "cronos-testnet": NetworkSettings(
        chain_id=338,
        rpc_url="https://evm-t3.cronos.org",
        usdc_address="0xc01efAaF7C5C61bEbFAeb358E1161b537b8bC0e0",
        block_explorer="https://explorer.cronos.org/testnet",
    ),
})


def is_valid_network(network: Optional[str]) -> bool:
    return network in NETWORK_CONFIGS


def _lookup(network: str) -> NetworkSettings:
    if not is_valid_network(network):
        raise ConfigurationError(
            f"Invalid network: {network}. Must be one of: {', '.join(NETWORK_CONFIGS)}",
            ["network"],
        )
    return NETWORK_CONFIGS[network]


def get_network_settings(network: str, rpc_url: Optional[str] = None) -> NetworkSettings:
    """
    Returns the settings for a network. A custom RPC URL replaces only rpc_url.
    """
    settings = _lookup(network)
    if rpc_url:
        return replace(settings, rpc_url=rpc_url)
    return settings


def get_rpc_url(network: str, custom_url: Optional[str] = None) -> str:
    return custom_url or _lookup(network).rpc_url


def get_chain_id(network: str) -> int:
    return _lookup(network).chain_id


def get_usdc_address(network: str) -> str:
    return _lookup(network).usdc_address


def get_block_explorer(network: str) -> str:
    return _lookup(network).block_explorer


def explorer_tx_url(network: str, tx_hash: str) -> str:
    return f"{get_block_explorer(network)}/tx/{tx_hash}"
