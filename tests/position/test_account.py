"""Tests for account and system solvency snapshots."""

import math

import pytest

from src.data.constants import WBTC, WETH
from src.data.static_params import MockAggregator
from src.position.account import (
    AccountInformation,
    SystemSolvency,
    accounts_frame,
    system_solvency,
)
from src.protocol.engine import SolvencyEngine
from src.protocol.token import ERC20Token, StableCoin
from tests.conftest import AMOUNT_COLLATERAL, AMOUNT_TO_MINT, fund


class TestAccountInformation:
    def test_minted_user(self, engine: SolvencyEngine, minted: str) -> None:
        assert engine.get_account_information(minted) == AccountInformation(
            total_dsc_minted=AMOUNT_TO_MINT,
            collateral_value_in_usd=20_000 * 10**18,
        )

    def test_unknown_user(self, engine: SolvencyEngine) -> None:
        assert engine.get_account_information("nobody") == AccountInformation(0, 0)


class TestSystemSolvency:
    def test_empty_engine(self, engine: SolvencyEngine) -> None:
        solvency = system_solvency(engine)
        assert solvency.total_collateral_usd == 0
        assert solvency.total_debt == 0
        assert solvency.is_solvent
        assert math.isinf(solvency.collateral_ratio)

    def test_aggregates_users(
        self, engine: SolvencyEngine, wbtc: ERC20Token, minted: str
    ) -> None:
        fund(wbtc, engine, "alice", 3 * 10**18)
        engine.deposit_and_mint("alice", WBTC, 3 * 10**18, 500 * 10**18)

        solvency = system_solvency(engine)
        assert solvency.collateral_by_asset == {WETH: AMOUNT_COLLATERAL, WBTC: 3 * 10**18}
        assert solvency.total_collateral_usd == 23_000 * 10**18
        assert solvency.total_debt == 600 * 10**18
        assert solvency.collateral_ratio == pytest.approx(23_000 / 600)

    def test_debt_independent_of_coin_holder(
        self, engine: SolvencyEngine, dsc: StableCoin, minted: str
    ) -> None:
        dsc.transfer(minted, "elsewhere", AMOUNT_TO_MINT)
        assert system_solvency(engine).total_debt == AMOUNT_TO_MINT

    def test_insolvent_after_crash(
        self, engine: SolvencyEngine, eth_feed: MockAggregator, minted: str
    ) -> None:
        eth_feed.update_answer(5 * 10**8)  # 10 WETH worth $50
        solvency = system_solvency(engine)
        assert not solvency.is_solvent
        assert solvency.collateral_ratio == pytest.approx(0.5)

    def test_ratio_properties(self) -> None:
        s = SystemSolvency(total_collateral_usd=150, total_debt=100, collateral_by_asset={})
        assert s.is_solvent
        assert s.collateral_ratio == pytest.approx(1.5)


class TestAccountsFrame:
    def test_columns_and_values(
        self, engine: SolvencyEngine, minted: str, wbtc: ERC20Token
    ) -> None:
        fund(wbtc, engine, "alice", 10**18)
        engine.deposit("alice", WBTC, 10**18)

        df = accounts_frame(engine).set_index("user")
        assert list(df.columns) == ["debt", "collateral_usd", "health_factor"]
        assert df.loc[minted, "debt"] == pytest.approx(100.0)
        assert df.loc[minted, "collateral_usd"] == pytest.approx(20_000.0)
        assert df.loc[minted, "health_factor"] == pytest.approx(100.0)
        assert math.isinf(df.loc["alice", "health_factor"])

    def test_empty(self, engine: SolvencyEngine) -> None:
        df = accounts_frame(engine)
        assert df.empty
        assert list(df.columns) == ["user", "debt", "collateral_usd", "health_factor"]
