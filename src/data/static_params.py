"""Static price feeds and parameters for the local (anvil-like) network."""

from __future__ import annotations

import time
from typing import Callable

from src.data.constants import FEED_DECIMALS, WBTC, WETH
from src.data.interfaces import PriceFeed, RoundData

# --- Local network defaults (USD prices, 8 decimals) ---

ETH_USD_PRICE = 2000 * 10**FEED_DECIMALS
BTC_USD_PRICE = 1000 * 10**FEED_DECIMALS

_INITIAL_ANSWERS: dict[str, int] = {
    WETH: ETH_USD_PRICE,
    WBTC: BTC_USD_PRICE,
}


class MockAggregator(PriceFeed):
    """In-memory Chainlink aggregator whose answer can be pushed by hand.

    Each update opens a new round stamped with the current ``clock`` time.
    """

    def __init__(
        self,
        decimals: int,
        initial_answer: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._decimals = decimals
        self._clock = clock
        self.latest_round = 0
        self.latest_answer = 0
        self.latest_timestamp = 0
        self._started_at = 0
        self.update_answer(initial_answer)

    def decimals(self) -> int:
        return self._decimals

    def update_answer(self, answer: int) -> None:
        now = int(self._clock())
        self.latest_round += 1
        self.latest_answer = answer
        self.latest_timestamp = now
        self._started_at = now

    def update_round_data(
        self, round_id: int, answer: int, timestamp: int, started_at: int
    ) -> None:
        """Overwrite the latest round, e.g. to simulate a stalled feed."""
        self.latest_round = round_id
        self.latest_answer = answer
        self.latest_timestamp = timestamp
        self._started_at = started_at

    def latest_round_data(self) -> RoundData:
        return RoundData(
            round_id=self.latest_round,
            answer=self.latest_answer,
            started_at=self._started_at,
            updated_at=self.latest_timestamp,
            answered_in_round=self.latest_round,
        )


def static_price_feeds(
    clock: Callable[[], float] = time.time,
) -> dict[str, MockAggregator]:
    """Fresh mock feeds for every local collateral asset."""
    return {
        asset: MockAggregator(FEED_DECIMALS, answer, clock=clock)
        for asset, answer in _INITIAL_ANSWERS.items()
    }
