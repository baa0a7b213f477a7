import os

# Protocol Constants
# Runtime defaults can be overridden by environment variables.

# --- NETWORK ---
DEFAULT_NETWORK = os.getenv("X402_NETWORK", "cronos-testnet")
RPC_URL_OVERRIDE = os.getenv("X402_RPC_URL") or None

# --- ASSETS ---
# USDC on Cronos uses 6 decimals; this is fixed by the token, not read on-chain.
USDC_DECIMALS = 6

# --- AUTHORIZATION ---
DEFAULT_VALIDITY_SECONDS = 3600
TOTAL_BIPS = 10000
SIGNATURE_PREFIX = "0x"
SIGNATURE_HEX_LENGTH = 130  # 65 bytes
UINT256_MAX = 2**256 - 1

# --- DISCOVERY ---
AGENT_CARD_PATH = "/.well-known/agent.json"
SERVICES_PATH = "/api/x402/services"
DISCOVERY_TIMEOUT = float(os.getenv("X402_DISCOVERY_TIMEOUT", "10"))

# --- LOGGING ---
LOG_LEVEL = os.getenv("X402_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("X402_LOG_FILE") or None
