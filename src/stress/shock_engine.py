"""Shock engine: apply price scenarios to engine positions without mutating them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Mapping

import numpy as np
import pandas as pd

from src.data.constants import LIQUIDATION_PRECISION, LIQUIDATION_THRESHOLD
from src.data.interfaces import PriceFeed, PriceOracle, PriceQuote
from src.protocol.engine import calculate_health_factor
from src.protocol.valuation import ValuationService
from src.stress.scenarios import PriceShockScenario

if TYPE_CHECKING:
    from src.protocol.engine import SolvencyEngine


class ShockedOracle(PriceOracle):
    """Wraps an oracle and scales its prices by a per-asset multiplier."""

    def __init__(self, base: PriceOracle, multipliers: Mapping[str, float]) -> None:
        self.base = base
        self.multipliers = dict(multipliers)

    def latest_price(self, asset: str) -> PriceQuote:
        quote = self.base.latest_price(asset)
        factor = self.multipliers.get(asset, 1.0)
        return PriceQuote(
            price=int(round(quote.price * factor)),
            decimals=quote.decimals,
            is_stale=quote.is_stale,
        )

    def price_feed(self, asset: str) -> PriceFeed:
        return self.base.price_feed(asset)


def _hf_as_float(debt: int, collateral_usd: int) -> float:
    if debt == 0:
        return float("inf")
    return calculate_health_factor(debt, collateral_usd) / 1e18


def apply_scenario(
    engine: SolvencyEngine,
    scenario: PriceShockScenario,
    users: Iterable[str] | None = None,
) -> pd.DataFrame:
    """Revalue every position under *scenario*.

    Args:
        engine: Engine whose positions are revalued (not mutated).
        scenario: Price moves to apply on top of current oracle prices.
        users: Accounts to include; defaults to every known user.

    Returns:
        DataFrame with columns: user, debt, collateral_before,
        collateral_after, hf_before, hf_after, is_liquidatable.
        Amounts are in USD units (float).
    """
    assets = engine.get_collateral_tokens()
    multipliers = {asset: scenario.multiplier(asset) for asset in assets}
    shocked = ValuationService(ShockedOracle(engine.oracle, multipliers), assets)

    rows = []
    for user in users if users is not None else engine.get_users():
        balances = engine.vault.balances(user)
        debt = engine.get_minted_debt(user)
        before = engine.valuation.total_collateral_usd(balances)
        after = shocked.total_collateral_usd(balances)
        hf_after = _hf_as_float(debt, after)
        rows.append(
            {
                "user": user,
                "debt": debt / 1e18,
                "collateral_before": before / 1e18,
                "collateral_after": after / 1e18,
                "hf_before": _hf_as_float(debt, before),
                "hf_after": hf_after,
                "is_liquidatable": hf_after < 1.0,
            }
        )

    return pd.DataFrame(
        rows,
        columns=[
            "user",
            "debt",
            "collateral_before",
            "collateral_after",
            "hf_before",
            "hf_after",
            "is_liquidatable",
        ],
    )


def health_factor_sensitivity(
    engine: SolvencyEngine,
    user: str,
    asset: str,
    multiplier_range: tuple[float, float] = (0.3, 1.5),
    n_points: int = 100,
) -> pd.DataFrame:
    """Health factor of *user* as the price of *asset* moves.

    Returns:
        DataFrame with columns: price_multiplier, price_usd, health_factor
    """
    multipliers = np.linspace(multiplier_range[0], multiplier_range[1], n_points)
    assets = engine.get_collateral_tokens()
    balances = engine.vault.balances(user)
    debt = engine.get_minted_debt(user)
    base_price = engine.valuation.normalized_price(asset) / 1e18

    hfs = []
    for m in multipliers:
        shocked = ValuationService(ShockedOracle(engine.oracle, {asset: float(m)}), assets)
        hfs.append(_hf_as_float(debt, shocked.total_collateral_usd(balances)))

    return pd.DataFrame(
        {
            "price_multiplier": multipliers,
            "price_usd": multipliers * base_price,
            "health_factor": hfs,
        }
    )


def liquidation_price(engine: SolvencyEngine, user: str, asset: str) -> float:
    """USD price of *asset* at which *user*'s health factor reaches 1.0.

    Other collateral prices are held fixed. Returns 0.0 when no positive
    price of *asset* makes the position liquidatable (including no debt).
    """
    amount = engine.get_collateral_balance_of_user(user, asset)
    if amount <= 0:
        raise ValueError(f"{user} has no {asset} collateral")
    debt = engine.get_minted_debt(user) / 1e18
    if debt <= 0:
        return 0.0

    balances = engine.vault.balances(user)
    other_usd = sum(
        engine.get_usd_value(other, qty)
        for other, qty in balances.items()
        if other != asset and qty
    ) / 1e18
    # (other_usd + amount * p) * threshold = debt
    required = debt * LIQUIDATION_PRECISION / LIQUIDATION_THRESHOLD
    price = (required - other_usd) / (amount / 1e18)
    return max(price, 0.0)


def generate_correlated_price_shocks(
    n_scenarios: int,
    vols: Mapping[str, float],
    correlation: np.ndarray | None = None,
    seed: int | None = None,
) -> pd.DataFrame:
    """Correlated price multipliers per asset via Cholesky decomposition.

    Args:
        n_scenarios: Number of scenarios to draw.
        vols: Shock volatility per asset (e.g. 0.30 = 30%).
        correlation: Correlation matrix in ``vols`` order. Defaults to a
            constant 0.8 correlation between every pair of assets.
        seed: Random seed for reproducibility.

    Returns:
        DataFrame with one column of multipliers per asset, floored at 0.01.
    """
    assets = list(vols)
    k = len(assets)
    if correlation is None:
        correlation = np.full((k, k), 0.8)
        np.fill_diagonal(correlation, 1.0)

    sigma = np.array([vols[a] for a in assets])
    cov = correlation * np.outer(sigma, sigma)
    L = np.linalg.cholesky(cov)

    rng = np.random.default_rng(seed)
    z = rng.standard_normal((n_scenarios, k))
    shocks = z @ L.T

    return pd.DataFrame(np.clip(1.0 + shocks, 0.01, None), columns=assets)


def liquidation_probability(
    engine: SolvencyEngine,
    user: str,
    shocks: pd.DataFrame,
) -> float:
    """Fraction of *shocks* rows under which *user* becomes liquidatable.

    Collateral in assets without a shock column keeps its current value.
    """
    debt = engine.get_minted_debt(user) / 1e18
    if debt <= 0 or shocks.empty:
        return 0.0

    usd = {
        asset: engine.get_usd_value(asset, qty) / 1e18
        for asset, qty in engine.vault.balances(user).items()
        if qty
    }
    values = np.array([usd.get(asset, 0.0) for asset in shocks.columns])
    unshocked = sum(v for asset, v in usd.items() if asset not in shocks.columns)
    collateral = shocks.to_numpy() @ values + unshocked
    hf = collateral * LIQUIDATION_THRESHOLD / LIQUIDATION_PRECISION / debt
    return float(np.mean(hf < 1.0))
