"""Shared fixtures: a local deployment with a controllable clock."""

from __future__ import annotations

import pytest

from src.data.constants import WBTC, WETH
from src.data.provider_factory import Deployment, create_engine
from src.data.static_params import MockAggregator
from src.protocol.engine import SolvencyEngine
from src.protocol.token import ERC20Token, StableCoin

USER = "user"
LIQUIDATOR = "liquidator"

AMOUNT_COLLATERAL = 10 * 10**18
AMOUNT_TO_MINT = 100 * 10**18
STARTING_ERC20_BALANCE = 10 * 10**18

START_TIME = 1_700_000_000


class FakeClock:
    """Mutable unix time source."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def deployment(clock: FakeClock) -> Deployment:
    return create_engine(clock=clock)


@pytest.fixture
def engine(deployment: Deployment) -> SolvencyEngine:
    return deployment.engine


@pytest.fixture
def dsc(deployment: Deployment) -> StableCoin:
    return deployment.dsc


@pytest.fixture
def weth(deployment: Deployment) -> ERC20Token:
    return deployment.tokens[WETH]


@pytest.fixture
def wbtc(deployment: Deployment) -> ERC20Token:
    return deployment.tokens[WBTC]


@pytest.fixture
def eth_feed(deployment: Deployment) -> MockAggregator:
    return deployment.price_feeds[WETH]


@pytest.fixture
def btc_feed(deployment: Deployment) -> MockAggregator:
    return deployment.price_feeds[WBTC]


def fund(token: ERC20Token, engine: SolvencyEngine, account: str, amount: int) -> None:
    """Give *account* tokens and approve the engine to pull them."""
    token.faucet(account, amount)
    token.approve(account, engine.address, amount)


@pytest.fixture
def funded_user(engine: SolvencyEngine, weth: ERC20Token) -> str:
    fund(weth, engine, USER, STARTING_ERC20_BALANCE)
    return USER


@pytest.fixture
def deposited(engine: SolvencyEngine, funded_user: str) -> str:
    engine.deposit(funded_user, WETH, AMOUNT_COLLATERAL)
    return funded_user


@pytest.fixture
def minted(engine: SolvencyEngine, funded_user: str) -> str:
    engine.deposit_and_mint(funded_user, WETH, AMOUNT_COLLATERAL, AMOUNT_TO_MINT)
    return funded_user
