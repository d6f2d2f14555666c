"""Network configuration and engine deployment factory."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable

from src.data.constants import ANVIL_CHAIN_ID, ORACLE_TIMEOUT_SECONDS, SEPOLIA_CHAIN_ID, WBTC, WETH
from src.data.contracts import SEPOLIA_ASSET_ADDRESSES, SEPOLIA_PRICE_FEEDS
from src.data.interfaces import PriceFeed
from src.data.static_params import static_price_feeds
from src.protocol.engine import SolvencyEngine
from src.protocol.token import ERC20Token, StableCoin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    """Collateral assets and their USD price feeds for one network.

    ``price_feeds`` holds feed addresses on live networks and is empty on
    the local network, where mock aggregators are created instead.
    """

    chain_id: int
    assets: tuple[str, ...]
    asset_addresses: dict[str, str]
    price_feeds: dict[str, str]


ANVIL_CONFIG = NetworkConfig(
    chain_id=ANVIL_CHAIN_ID,
    assets=(WETH, WBTC),
    asset_addresses={},
    price_feeds={},
)

SEPOLIA_CONFIG = NetworkConfig(
    chain_id=SEPOLIA_CHAIN_ID,
    assets=(WETH, WBTC),
    asset_addresses=dict(SEPOLIA_ASSET_ADDRESSES),
    price_feeds=dict(SEPOLIA_PRICE_FEEDS),
)

_CONFIGS: dict[int, NetworkConfig] = {
    ANVIL_CHAIN_ID: ANVIL_CONFIG,
    SEPOLIA_CHAIN_ID: SEPOLIA_CONFIG,
}


def get_network_config(chain_id: int) -> NetworkConfig:
    config = _CONFIGS.get(chain_id)
    if config is None:
        raise ValueError(f"No network config for chain id {chain_id}")
    return config


@dataclass
class Deployment:
    """Everything wired together by :func:`create_engine`."""

    engine: SolvencyEngine
    dsc: StableCoin
    tokens: dict[str, ERC20Token]
    price_feeds: dict[str, PriceFeed]
    config: NetworkConfig


def _onchain_price_feeds(
    config: NetworkConfig, rpc_url: str
) -> dict[str, PriceFeed]:
    from web3 import Web3

    from src.data.onchain_provider import ChainlinkPriceFeed

    w3 = Web3(Web3.HTTPProvider(rpc_url))
    return {
        asset: ChainlinkPriceFeed(config.price_feeds[asset], w3=w3)
        for asset in config.assets
    }


def create_price_feeds(
    use_onchain: bool = False,
    rpc_url: str | None = None,
    clock: Callable[[], float] = time.time,
) -> tuple[NetworkConfig, dict[str, PriceFeed]]:
    """Select live Chainlink feeds or local mock aggregators.

    Parameters
    ----------
    use_onchain : bool
        If True, attempt to read the Sepolia Chainlink feeds.
    rpc_url : str | None
        Ethereum JSON-RPC URL.  Falls back to the ``ETH_RPC_URL``
        environment variable when not supplied.
    clock : Callable[[], float]
        Time source stamped on mock rounds.
    """
    if not use_onchain:
        return ANVIL_CONFIG, dict(static_price_feeds(clock))

    resolved_url = rpc_url or os.environ.get("ETH_RPC_URL")
    if not resolved_url:
        logger.warning("On-chain feeds requested but no RPC URL provided; using mock feeds")
        return ANVIL_CONFIG, dict(static_price_feeds(clock))

    try:
        return SEPOLIA_CONFIG, _onchain_price_feeds(SEPOLIA_CONFIG, resolved_url)
    except ImportError:
        logger.warning("web3 is not installed; falling back to mock feeds")
    except Exception:
        logger.warning("Failed to create Chainlink feeds; using mock feeds", exc_info=True)
    return ANVIL_CONFIG, dict(static_price_feeds(clock))


def create_engine(
    use_onchain: bool = False,
    rpc_url: str | None = None,
    deployer: str = "deployer",
    engine_address: str = "dsc-engine",
    oracle_timeout: int = ORACLE_TIMEOUT_SECONDS,
    clock: Callable[[], float] = time.time,
) -> Deployment:
    """Deploy the stable coin, collateral ledgers and engine.

    The stable coin is created by ``deployer`` and ownership is handed to
    the engine so that only the engine can mint and burn.
    """
    config, feeds = create_price_feeds(use_onchain, rpc_url, clock)
    tokens = {asset: ERC20Token(asset) for asset in config.assets}

    dsc = StableCoin(owner=deployer)
    engine = SolvencyEngine(
        collateral_tokens=[tokens[asset] for asset in config.assets],
        price_feeds=[feeds[asset] for asset in config.assets],
        dsc=dsc,
        address=engine_address,
        oracle_timeout=oracle_timeout,
        clock=clock,
    )
    dsc.transfer_ownership(deployer, engine.address)
    logger.info(
        "Deployed engine %s on chain %d with collateral %s",
        engine.address,
        config.chain_id,
        ", ".join(config.assets),
    )
    return Deployment(
        engine=engine,
        dsc=dsc,
        tokens=tokens,
        price_feeds=feeds,
        config=config,
    )
