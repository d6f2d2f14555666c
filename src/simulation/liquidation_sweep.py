"""Liquidation sweep: walk a collateral price down and liquidate as it falls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING, Sequence

from src.data.constants import MIN_HEALTH_FACTOR
from src.data.static_params import MockAggregator
from src.position.account import system_solvency
from src.protocol.errors import (
    BreaksHealthFactor,
    DebtToCoverTooSmall,
    HealthFactorNotImproved,
    InsufficientCollateral,
)
from src.simulation.results import SweepResult, SweepStep

if TYPE_CHECKING:
    from src.protocol.engine import SolvencyEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepConfig:
    """Configuration for a liquidation sweep.

    Attributes:
        asset: Collateral asset whose price follows ``price_path`` and which
            the liquidator seizes.
        price_path: Successive feed answers (in the feed's decimals).
        close_factor: Fraction of a position's debt covered per liquidation,
            in (0, 1].
        min_debt_to_cover: Skip liquidations smaller than this (1e18 units).
    """

    asset: str
    price_path: Sequence[int]
    close_factor: float = 0.5
    min_debt_to_cover: int = 10**18

    def __post_init__(self) -> None:
        if not 0 < self.close_factor <= 1:
            raise ValueError(f"close_factor must be in (0, 1], got {self.close_factor}")


def run_liquidation_sweep(
    engine: SolvencyEngine,
    feed: MockAggregator,
    liquidator: str,
    config: SweepConfig,
) -> SweepResult:
    """Push each price of ``config.price_path`` to *feed* and liquidate.

    At every step each unhealthy position (other than the liquidator's) is
    liquidated once, covering ``close_factor`` of its debt, limited by the
    liquidator's DSC balance. Positions too underwater to improve by
    liquidation are reported in ``unliquidatable_users``.

    Mutates *engine* and *feed*; run it against a dedicated deployment.
    """
    dsc = engine.get_dsc()
    steps: list[SweepStep] = []
    total_covered = total_seized = total_bonus = 0

    for step_num, price in enumerate(config.price_path, start=1):
        feed.update_answer(price)

        liquidatable = 0
        liquidations = 0
        covered = seized = bonus = 0
        stuck: list[str] = []

        for user in engine.get_users():
            if user == liquidator:
                continue
            debt = engine.get_minted_debt(user)
            if debt == 0 or engine.get_health_factor(user) >= MIN_HEALTH_FACTOR:
                continue
            liquidatable += 1

            debt_to_cover = min(
                int(debt * Fraction(config.close_factor)), dsc.balance_of(liquidator)
            )
            if debt_to_cover < config.min_debt_to_cover:
                continue

            dsc.approve(liquidator, engine.address, debt_to_cover)
            try:
                event = engine.liquidate(liquidator, config.asset, user, debt_to_cover)
            except (
                BreaksHealthFactor,
                DebtToCoverTooSmall,
                HealthFactorNotImproved,
                InsufficientCollateral,
            ) as e:
                logger.warning("Cannot liquidate %s at price %d: %s", user, price, e)
                stuck.append(user)
                continue

            liquidations += 1
            covered += event.debt_covered
            seized += event.collateral_seized
            bonus += event.bonus

        solvency = system_solvency(engine)
        steps.append(
            SweepStep(
                step=step_num,
                price=price,
                liquidatable_users=liquidatable,
                liquidations=liquidations,
                debt_covered=covered,
                collateral_seized=seized,
                bonus_paid=bonus,
                unliquidatable_users=tuple(stuck),
                collateral_ratio=solvency.collateral_ratio,
            )
        )
        total_covered += covered
        total_seized += seized
        total_bonus += bonus

    logger.info(
        "Sweep finished after %d steps: %d DSC covered, %d %s seized",
        len(steps),
        total_covered,
        total_seized + total_bonus,
        config.asset,
    )
    return SweepResult(
        steps=steps,
        total_debt_covered=total_covered,
        total_collateral_seized=total_seized,
        total_bonus_paid=total_bonus,
    )
