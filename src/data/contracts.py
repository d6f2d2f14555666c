"""Contract addresses and minimal ABIs for on-chain price feeds."""

# ---------------------------------------------------------------------------
# Sepolia testnet
# ---------------------------------------------------------------------------
SEPOLIA_ASSET_ADDRESSES: dict[str, str] = {
    "WETH": "0xdd13E55209Fd76AfE204dBda4007C227904f0a81",
    "WBTC": "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063",
}

SEPOLIA_PRICE_FEEDS: dict[str, str] = {
    "WETH": "0x694AA1769357215DE4FAC081bf1f309aDC325306",  # ETH / USD
    "WBTC": "0x1b44F3514812d835EB1BDB0acB33d3fA3351Ee43",  # BTC / USD
}

# ---------------------------------------------------------------------------
# Minimal ABIs: only the view functions we call
# ---------------------------------------------------------------------------

CHAINLINK_FEED_ABI = [
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"name": "roundId", "type": "uint80"},
            {"name": "answer", "type": "int256"},
            {"name": "startedAt", "type": "uint256"},
            {"name": "updatedAt", "type": "uint256"},
            {"name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "description",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
]
