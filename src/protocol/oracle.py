"""Staleness-checked price oracle over Chainlink-style feeds."""

from __future__ import annotations

import logging
import time
from typing import Callable, Mapping

from src.data.constants import ORACLE_TIMEOUT_SECONDS
from src.data.interfaces import PriceFeed, PriceOracle, PriceQuote, RoundData
from src.protocol.errors import OracleStale, TokenNotAllowed

logger = logging.getLogger(__name__)


def is_round_stale(
    round_data: RoundData, now: float, timeout: int = ORACLE_TIMEOUT_SECONDS
) -> bool:
    """A round is stale if never updated, carried over, or too old."""
    if round_data.updated_at == 0:
        return True
    if round_data.answered_in_round < round_data.round_id:
        return True
    return now - round_data.updated_at > timeout


class StalenessCheckedOracle(PriceOracle):
    """Asset -> USD oracle backed by one price feed per asset.

    Parameters
    ----------
    feeds : Mapping[str, PriceFeed]
        Price feed per collateral asset.
    timeout : int
        Maximum age of a round, in seconds, before it counts as stale.
    clock : Callable[[], float]
        Current unix time; injectable for tests.
    """

    def __init__(
        self,
        feeds: Mapping[str, PriceFeed],
        timeout: int = ORACLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._feeds = dict(feeds)
        self.timeout = timeout
        self._clock = clock

    def price_feed(self, asset: str) -> PriceFeed:
        feed = self._feeds.get(asset)
        if feed is None:
            raise TokenNotAllowed(asset)
        return feed

    def latest_price(self, asset: str) -> PriceQuote:
        feed = self.price_feed(asset)
        round_data = feed.latest_round_data()
        stale = is_round_stale(round_data, self._clock(), self.timeout)
        if stale:
            logger.warning(
                "Stale round %d for %s (updated_at=%d)",
                round_data.round_id,
                asset,
                round_data.updated_at,
            )
        return PriceQuote(
            price=round_data.answer,
            decimals=feed.decimals(),
            is_stale=stale,
        )


def checked_price(oracle: PriceOracle, asset: str) -> PriceQuote:
    """Fetch a quote, raising ``OracleStale`` if it is stale or non-positive."""
    quote = oracle.latest_price(asset)
    if quote.is_stale or quote.price <= 0:
        raise OracleStale(asset, quote.price)
    return quote
