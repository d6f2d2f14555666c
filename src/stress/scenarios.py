"""Stress scenario definitions: historical and custom collateral price shocks."""

from dataclasses import dataclass, field

from src.data.constants import WBTC, WETH


@dataclass(frozen=True)
class PriceShockScenario:
    """A set of simultaneous USD price moves for collateral assets.

    Attributes:
        name: Short identifier.
        description: Human-readable explanation.
        price_changes: Fractional price change per asset (e.g. -0.40 = -40%).
            Assets not listed keep their current price.
        duration_days: Duration of the stress period.
    """

    name: str
    description: str
    price_changes: dict[str, float] = field(default_factory=dict)
    duration_days: int = 1

    def multiplier(self, asset: str) -> float:
        """Factor applied to the current price of *asset*."""
        return 1.0 + self.price_changes.get(asset, 0.0)


# --- Historical scenarios ---

MARCH_2020_BLACK_THURSDAY = PriceShockScenario(
    name="March 2020 Black Thursday",
    description="COVID crash: ETH fell ~50% and BTC ~40% in 24 hours. "
    "Massive liquidation cascade across DeFi.",
    price_changes={WETH: -0.50, WBTC: -0.40},
    duration_days=1,
)

MAY_2022_TERRA_LUNA = PriceShockScenario(
    name="May 2022 Terra/Luna",
    description="UST depeg and Luna collapse. ETH dropped ~35%, BTC ~25% "
    "on contagion fears.",
    price_changes={WETH: -0.35, WBTC: -0.25},
    duration_days=7,
)

NOVEMBER_2022_FTX = PriceShockScenario(
    name="November 2022 FTX",
    description="FTX insolvency. ETH dropped ~25%, BTC ~22% within a week.",
    price_changes={WETH: -0.25, WBTC: -0.22},
    duration_days=7,
)

HISTORICAL_SCENARIOS = [MARCH_2020_BLACK_THURSDAY, MAY_2022_TERRA_LUNA, NOVEMBER_2022_FTX]


def create_custom_scenario(
    name: str,
    price_changes: dict[str, float],
    duration_days: int = 1,
    description: str = "Custom scenario",
) -> PriceShockScenario:
    """Factory for user-defined stress scenarios."""
    for asset, change in price_changes.items():
        if change <= -1.0:
            raise ValueError(f"Price change for {asset} must be above -100%, got {change}")
    return PriceShockScenario(
        name=name,
        description=description,
        price_changes=dict(price_changes),
        duration_days=duration_days,
    )
