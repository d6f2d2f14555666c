"""Live Chainlink price feeds read via web3.py."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from src.data.contracts import CHAINLINK_FEED_ABI
from src.data.interfaces import PriceFeed, RoundData

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# TTL cache
# ---------------------------------------------------------------------------

class _TTLCache:
    """Simple dict-based cache with per-entry TTL expiry."""

    def __init__(self, ttl: float) -> None:
        self._ttl = ttl
        self._store: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        ts, value = entry
        if time.monotonic() - ts > self._ttl:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._store[key] = (time.monotonic(), value)

    def clear(self) -> None:
        self._store.clear()


def _round_from_tuple(raw: tuple[int, int, int, int, int]) -> RoundData:
    """Decode a ``latestRoundData`` return tuple."""
    return RoundData(
        round_id=int(raw[0]),
        answer=int(raw[1]),
        started_at=int(raw[2]),
        updated_at=int(raw[3]),
        answered_in_round=int(raw[4]),
    )


# ---------------------------------------------------------------------------
# ChainlinkPriceFeed
# ---------------------------------------------------------------------------

class ChainlinkPriceFeed(PriceFeed):
    """Chainlink AggregatorV3 feed read over JSON-RPC.

    Parameters
    ----------
    address : str
        Aggregator contract address.
    rpc_url : str | None
        Ethereum JSON-RPC endpoint URL. Ignored when ``w3`` is given.
    cache_ttl : float
        Seconds before a cached round expires (default 15).
    fallback : PriceFeed | None
        Optional feed used when an RPC call fails.
    w3 : Any | None
        Pre-built ``Web3`` instance to share a connection between feeds.
    """

    def __init__(
        self,
        address: str,
        rpc_url: str | None = None,
        cache_ttl: float = 15.0,
        fallback: PriceFeed | None = None,
        w3: Any | None = None,
    ) -> None:
        if w3 is None:
            if not rpc_url:
                raise ValueError("Either rpc_url or w3 is required")
            from web3 import Web3

            w3 = Web3(Web3.HTTPProvider(rpc_url))

        self._w3 = w3
        self._cache = _TTLCache(cache_ttl)
        self._fallback = fallback
        self.address = self._w3.to_checksum_address(address)
        self._aggregator = self._w3.eth.contract(
            address=self.address, abi=CHAINLINK_FEED_ABI
        )
        self._decimals: int | None = None

    def _call_with_fallback(
        self,
        cache_key: str,
        fetcher: Callable[[], Any],
        fallback_method: Callable[[], Any] | None,
    ) -> Any:
        """Cache → RPC → fallback pipeline."""
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            value = fetcher()
            self._cache.set(cache_key, value)
            return value
        except Exception:
            logger.warning(
                "RPC call failed for %s on %s, using fallback",
                cache_key,
                self.address,
                exc_info=True,
            )

        if fallback_method is not None:
            return fallback_method()

        raise RuntimeError(f"RPC call failed and no fallback available for {cache_key}")

    def decimals(self) -> int:
        if self._decimals is None:
            fb = self._fallback.decimals if self._fallback else None
            self._decimals = int(
                self._call_with_fallback(
                    "decimals",
                    lambda: self._aggregator.functions.decimals().call(),
                    fb,
                )
            )
        return self._decimals

    def latest_round_data(self) -> RoundData:
        def _fetch() -> RoundData:
            return _round_from_tuple(
                self._aggregator.functions.latestRoundData().call()
            )

        fb = self._fallback.latest_round_data if self._fallback else None
        return self._call_with_fallback("latest_round", _fetch, fb)

    def refresh(self) -> None:
        """Invalidate the cached round, forcing a fresh RPC call."""
        self._cache.clear()

    @property
    def is_connected(self) -> bool:
        """Check if the Web3 provider is connected."""
        try:
            return self._w3.is_connected()
        except Exception:
            return False
