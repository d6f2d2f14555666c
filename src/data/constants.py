"""Asset identifiers and protocol constants."""

# Asset symbols
WETH = "WETH"
WBTC = "WBTC"
DSC = "DSC"

# Chain ids
ANVIL_CHAIN_ID = 31337
SEPOLIA_CHAIN_ID = 11155111

# Fixed-point units (18 decimals, like wei)
PRECISION = 10**18
ADDITIONAL_FEED_PRECISION = 10**10  # 8-decimal Chainlink USD feeds -> 18 decimals
FEED_DECIMALS = 8

# Solvency parameters
LIQUIDATION_THRESHOLD = 50  # 200% overcollateralized
LIQUIDATION_BONUS = 10  # 10% bonus for liquidators
LIQUIDATION_PRECISION = 100
MIN_HEALTH_FACTOR = 10**18

# uint256 width emulated by the engine
UINT256_MAX = 2**256 - 1

# Chainlink staleness window
ORACLE_TIMEOUT_SECONDS = 3 * 60 * 60

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
