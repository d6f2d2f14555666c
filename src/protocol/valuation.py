"""USD valuation of collateral from oracle prices, in 18-decimal fixed point."""

from __future__ import annotations

from typing import Iterable, Mapping

from src.data.constants import PRECISION, UINT256_MAX
from src.data.interfaces import PriceOracle
from src.protocol.errors import ArithmeticOverflow, OracleStale
from src.protocol.oracle import checked_price


def checked(value: int) -> int:
    """Reject values outside the uint256 range instead of wrapping."""
    if value > UINT256_MAX:
        raise ArithmeticOverflow(value)
    return value


class ValuationService:
    """Asset <-> USD conversions for a fixed list of approved assets."""

    def __init__(self, oracle: PriceOracle, assets: Iterable[str]) -> None:
        self.oracle = oracle
        self.assets: tuple[str, ...] = tuple(assets)

    def normalized_price(self, asset: str) -> int:
        """Fresh oracle price scaled to 18 decimals.

        Raises ``OracleStale`` if the feed is stale or non-positive, or if
        the price truncates to zero at 18 decimals.
        """
        quote = checked_price(self.oracle, asset)
        if quote.decimals <= 18:
            return checked(quote.price * 10 ** (18 - quote.decimals))
        price = quote.price // 10 ** (quote.decimals - 18)
        if price <= 0:
            raise OracleStale(asset, quote.price)
        return price

    def usd_value(self, asset: str, amount: int) -> int:
        """USD value (1e18 = $1) of *amount* of *asset*."""
        price = self.normalized_price(asset)
        return checked(price * amount) // PRECISION

    def asset_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        """Quantity of *asset* worth *usd_amount* (rounded down)."""
        price = self.normalized_price(asset)
        return checked(usd_amount * PRECISION) // price

    def total_collateral_usd(self, balances: Mapping[str, int]) -> int:
        """Sum of the USD value of every approved asset in *balances*."""
        total = 0
        for asset in self.assets:
            amount = balances.get(asset, 0)
            if amount:
                total = checked(total + self.usd_value(asset, amount))
        return total
