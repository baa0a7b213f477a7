from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_NETWORK, DISCOVERY_TIMEOUT, RPC_URL_OVERRIDE
from .core.network import is_valid_network
from .errors import ConfigurationError


def _check_network(network: Optional[str]) -> None:
    if not is_valid_network(network):
        raise ConfigurationError(
            f"Invalid network: {network}. Must be 'cronos' or 'cronos-testnet'", ["network"]
        )


@dataclass
class ServerConfig:
    """
    Configuration for a server exposing x402 hook services.

    Required: name, url (public base URL advertised in the agent card), network.
    """

    name: str
    url: str
    network: str = DEFAULT_NETWORK
    description: Optional[str] = None
    rpc_url: Optional[str] = RPC_URL_OVERRIDE

    def validate(self) -> None:
        missing = [f for f in ("name", "url", "network") if not getattr(self, f)]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration fields: {', '.join(missing)}", missing
            )
        _check_network(self.network)


@dataclass
class ClientConfig:
    network: str = DEFAULT_NETWORK
    rpc_url: Optional[str] = RPC_URL_OVERRIDE

    # Per-request timeout for discovery calls, in seconds
    discovery_timeout: float = DISCOVERY_TIMEOUT

    def validate(self) -> None:
        if not self.network:
            raise ConfigurationError("Missing required field: network", ["network"])
        _check_network(self.network)
        if self.discovery_timeout <= 0:
            raise ConfigurationError("discovery_timeout must be positive", ["discovery_timeout"])
