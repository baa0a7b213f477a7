from .config import ServerConfig, ClientConfig
from .server import X402Server, create_x402_server
from .client import X402Client, create_x402_client
from .contracts import load_abi
from .contracts.ledger_gateway import LedgerGateway
from .logging_config import configure_logging

from .core.hook_codec import (
    HookKind,
    NftMintHookData,
    RewardPointsHookData,
    TransferSplitHookData,
    Split,
    HookDataSchema,
)
from .core.models import ServiceConfig, ServiceRecord, PreparedAuthorization, TransactionOutcome
from .core.network import NETWORK_CONFIGS, NetworkSettings, get_network_settings
from .errors import (
    X402Error,
    ConfigurationError,
    ContractNotFoundError,
    NetworkError,
    SignatureError,
    TransactionError,
    HookDataError,
    HookDataDecodeError,
    InvalidAmountError,
)

__all__ = [
    "ServerConfig", "ClientConfig", "X402Server", "create_x402_server", "X402Client",
    "create_x402_client", "load_abi", "LedgerGateway", "configure_logging", "HookKind", "NftMintHookData",
    "RewardPointsHookData", "TransferSplitHookData", "Split", "HookDataSchema", "ServiceConfig",
    "ServiceRecord", "PreparedAuthorization", "TransactionOutcome", "NETWORK_CONFIGS",
    "NetworkSettings", "get_network_settings", "X402Error", "ConfigurationError",
    "ContractNotFoundError", "NetworkError", "SignatureError", "TransactionError", "HookDataError",
    "HookDataDecodeError", "InvalidAmountError",
]
