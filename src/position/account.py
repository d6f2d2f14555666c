"""Per-account and system-wide solvency snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from src.protocol.engine import SolvencyEngine


@dataclass(frozen=True)
class AccountInformation:
    """Minted debt and USD collateral value of one account (both 1e18 scaled)."""

    total_dsc_minted: int
    collateral_value_in_usd: int


@dataclass(frozen=True)
class SystemSolvency:
    """Total deposited collateral vs. total outstanding debt."""

    total_collateral_usd: int
    total_debt: int
    collateral_by_asset: dict[str, int]

    @property
    def is_solvent(self) -> bool:
        return self.total_collateral_usd >= self.total_debt

    @property
    def collateral_ratio(self) -> float:
        """Raw collateral / debt, or inf when there is no debt."""
        if self.total_debt <= 0:
            return float("inf")
        return self.total_collateral_usd / self.total_debt


def system_solvency(engine: SolvencyEngine) -> SystemSolvency:
    """Value all collateral held by the engine against the stable coin supply.

    Collateral is read from the vault balances of every known user, debt from
    the minted-debt records, so the result does not depend on who holds the
    stable coin.
    """
    collateral_by_asset = {asset: 0 for asset in engine.get_collateral_tokens()}
    total_debt = 0
    for user in engine.get_users():
        for asset, amount in engine.vault.balances(user).items():
            collateral_by_asset[asset] += amount
        total_debt += engine.get_minted_debt(user)

    total_usd = 0
    for asset, amount in collateral_by_asset.items():
        if amount:
            total_usd += engine.get_usd_value(asset, amount)

    return SystemSolvency(
        total_collateral_usd=total_usd,
        total_debt=total_debt,
        collateral_by_asset=collateral_by_asset,
    )


def accounts_frame(engine: SolvencyEngine) -> pd.DataFrame:
    """One row per known user: debt, collateral value and health factor.

    Amounts are converted from 1e18 fixed point to float units; a debt-free
    account has an infinite health factor.
    """
    rows = []
    for user in engine.get_users():
        info = engine.get_account_information(user)
        hf = engine.get_health_factor(user)
        rows.append(
            {
                "user": user,
                "debt": info.total_dsc_minted / 1e18,
                "collateral_usd": info.collateral_value_in_usd / 1e18,
                "health_factor": float("inf") if info.total_dsc_minted == 0 else hf / 1e18,
            }
        )
    return pd.DataFrame(rows, columns=["user", "debt", "collateral_usd", "health_factor"])
