"""Result dataclasses for simulation outputs."""

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class SweepStep:
    """One price update of a liquidation sweep.

    Amounts are 1e18 fixed point; ``collateral_ratio`` is raw system
    collateral / debt after the step.
    """

    step: int
    price: int
    liquidatable_users: int
    liquidations: int
    debt_covered: int
    collateral_seized: int
    bonus_paid: int
    unliquidatable_users: tuple[str, ...]
    collateral_ratio: float


@dataclass(frozen=True)
class SweepResult:
    """Result of a liquidation sweep along a price path."""

    steps: list[SweepStep]
    total_debt_covered: int
    total_collateral_seized: int
    total_bonus_paid: int

    def to_frame(self) -> pd.DataFrame:
        """Per-step table with amounts converted to float units."""
        return pd.DataFrame(
            [
                {
                    "step": s.step,
                    "price": s.price,
                    "liquidatable_users": s.liquidatable_users,
                    "liquidations": s.liquidations,
                    "debt_covered": s.debt_covered / 1e18,
                    "collateral_seized": s.collateral_seized / 1e18,
                    "bonus_paid": s.bonus_paid / 1e18,
                    "unliquidatable_users": len(s.unliquidatable_users),
                    "collateral_ratio": s.collateral_ratio,
                }
                for s in self.steps
            ]
        )
