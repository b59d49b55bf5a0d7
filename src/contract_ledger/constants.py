"""Configuration constants for contract-ledger library."""

# Gas limit used when a call or deployment does not specify one
DEFAULT_GAS = 4_000_000

# Seconds between transaction receipt queries
RECEIPT_POLL_INTERVAL = 1.0

# Seconds between filter change queries while watching live events
EVENT_POLL_INTERVAL = 1.0

# HTTP timeout for JSON-RPC requests, in seconds
RPC_TIMEOUT = 30

# Longest forwards-to chain followed before the reference is rejected
MAX_FORWARD_DEPTH = 16

# Build artifacts location, relative to the working directory
DEFAULT_BUILD_DIR = "resources/public/contracts/build"

# Environment variables read by SmartContracts.from_env
LEDGER_RPC_URL_ENV = "LEDGER_RPC_URL"
CONTRACTS_BUILD_PATH_ENV = "CONTRACTS_BUILD_PATH"

# Transaction fields forwarded to the node on contract creation
TX_PARAM_KEYS = (
    "from",
    "to",
    "gas",
    "gasPrice",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "value",
    "nonce",
)
