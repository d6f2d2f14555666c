"""Tests for the liquidation sweep along a falling price path."""

import pytest

from src.data.constants import MIN_HEALTH_FACTOR, WBTC, WETH
from src.data.static_params import MockAggregator
from src.protocol.engine import SolvencyEngine
from src.protocol.token import ERC20Token
from src.simulation.liquidation_sweep import SweepConfig, run_liquidation_sweep
from tests.conftest import LIQUIDATOR, fund


@pytest.fixture
def book(engine: SolvencyEngine, weth: ERC20Token, wbtc: ERC20Token) -> SolvencyEngine:
    """Two ETH-backed borrowers and a BTC-backed liquidator holding 2000 DSC.

    ``a``: 1 WETH / 800 DSC (HF 1.25), ``b``: 1 WETH / 500 DSC (HF 2.0).
    """
    for user, debt in (("a", 800), ("b", 500)):
        fund(weth, engine, user, 10**18)
        engine.deposit_and_mint(user, WETH, 10**18, debt * 10**18)
    fund(wbtc, engine, LIQUIDATOR, 10 * 10**18)
    engine.deposit_and_mint(LIQUIDATOR, WBTC, 10 * 10**18, 2000 * 10**18)
    return engine


class TestSweep:
    def test_liquidates_when_price_crosses(
        self, book: SolvencyEngine, eth_feed: MockAggregator, weth: ERC20Token
    ) -> None:
        config = SweepConfig(asset=WETH, price_path=[1800 * 10**8, 1500 * 10**8, 1200 * 10**8])
        result = run_liquidation_sweep(book, eth_feed, LIQUIDATOR, config)

        assert [s.liquidations for s in result.steps] == [0, 1, 0]
        assert [s.liquidatable_users for s in result.steps] == [0, 1, 0]
        assert result.total_debt_covered == 400 * 10**18
        # $400 / $1500, plus 10%
        assert result.total_collateral_seized == 266_666_666_666_666_666
        assert result.total_bonus_paid == 26_666_666_666_666_666
        assert weth.balance_of(LIQUIDATOR) == 293_333_333_333_333_332
        assert book.get_minted_debt("a") == 400 * 10**18
        assert book.get_health_factor("a") >= MIN_HEALTH_FACTOR

    def test_reports_positions_too_deep_to_liquidate(
        self, book: SolvencyEngine, eth_feed: MockAggregator
    ) -> None:
        result = run_liquidation_sweep(
            book, eth_feed, LIQUIDATOR, SweepConfig(asset=WETH, price_path=[800 * 10**8])
        )
        step = result.steps[0]
        assert step.liquidatable_users == 2
        assert step.unliquidatable_users == ("a",)
        assert step.liquidations == 1
        assert step.debt_covered == 250 * 10**18
        # a is untouched, b is back above the minimum
        assert book.get_minted_debt("a") == 800 * 10**18
        assert book.get_collateral_balance_of_user("a", WETH) == 10**18
        assert book.get_health_factor("b") >= MIN_HEALTH_FACTOR

    def test_limited_by_liquidator_balance(
        self, book: SolvencyEngine, eth_feed: MockAggregator
    ) -> None:
        dsc = book.get_dsc()
        dsc.transfer(LIQUIDATOR, "elsewhere", 1900 * 10**18)
        result = run_liquidation_sweep(
            book, eth_feed, LIQUIDATOR, SweepConfig(asset=WETH, price_path=[1500 * 10**8])
        )
        assert result.total_debt_covered == 100 * 10**18
        assert dsc.balance_of(LIQUIDATOR) == 0

    def test_skips_dust(self, book: SolvencyEngine, eth_feed: MockAggregator) -> None:
        config = SweepConfig(
            asset=WETH, price_path=[1500 * 10**8], min_debt_to_cover=1000 * 10**18
        )
        result = run_liquidation_sweep(book, eth_feed, LIQUIDATOR, config)
        assert result.steps[0].liquidatable_users == 1
        assert result.steps[0].liquidations == 0

    def test_to_frame(self, book: SolvencyEngine, eth_feed: MockAggregator) -> None:
        config = SweepConfig(asset=WETH, price_path=[1800 * 10**8, 1500 * 10**8])
        df = run_liquidation_sweep(book, eth_feed, LIQUIDATOR, config).to_frame()
        assert list(df["step"]) == [1, 2]
        assert df.loc[1, "debt_covered"] == pytest.approx(400.0)
        assert (df["collateral_ratio"] > 1).all()


class TestCloseFactor:
    @pytest.mark.parametrize("close_factor", [0, -0.5, 1.5])
    def test_rejects_out_of_range(self, close_factor: float) -> None:
        with pytest.raises(ValueError):
            SweepConfig(asset=WETH, price_path=[10**8], close_factor=close_factor)

    def test_full_close_covers_debt_exactly(
        self,
        engine: SolvencyEngine,
        weth: ERC20Token,
        wbtc: ERC20Token,
        eth_feed: MockAggregator,
    ) -> None:
        # 2**60 - 1 is not representable as a float
        debt = 2**60 - 1
        fund(weth, engine, "alice", 10**18)
        engine.deposit_and_mint("alice", WETH, 10**18, debt)
        fund(wbtc, engine, LIQUIDATOR, 10 * 10**18)
        engine.deposit_and_mint(LIQUIDATOR, WBTC, 10 * 10**18, 100 * 10**18)

        config = SweepConfig(asset=WETH, price_path=[2 * 10**8], close_factor=1.0)
        result = run_liquidation_sweep(engine, eth_feed, LIQUIDATOR, config)

        assert result.steps[0].unliquidatable_users == ()
        assert result.total_debt_covered == debt
        assert engine.get_minted_debt("alice") == 0
        # debt / $2, plus 10%
        assert result.total_collateral_seized == 576_460_752_303_423_487
        assert result.total_bonus_paid == 57_646_075_230_342_348
