"""Abstract interfaces for the engine's external collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RoundData:
    """A Chainlink ``latestRoundData`` answer."""

    round_id: int
    answer: int  # Signed fixed-point price, ``decimals`` places
    started_at: int
    updated_at: int  # Unix seconds
    answered_in_round: int


@dataclass(frozen=True)
class PriceQuote:
    """Price reported for an asset by a PriceOracle."""

    price: int
    decimals: int
    is_stale: bool


class PriceFeed(ABC):
    """Chainlink AggregatorV3-style price feed."""

    @abstractmethod
    def decimals(self) -> int:
        """Number of decimals in ``answer``."""

    @abstractmethod
    def latest_round_data(self) -> RoundData:
        """Most recent round reported by the feed."""


class PriceOracle(ABC):
    """Asset -> USD price source consumed by the valuation service."""

    @abstractmethod
    def latest_price(self, asset: str) -> PriceQuote:
        """Latest price for *asset* and whether it is stale."""

    @abstractmethod
    def price_feed(self, asset: str) -> Any:
        """Handle of the price feed backing *asset*."""


class Journaled(ABC):
    """State holder that can be rolled back by the engine."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture restorable state."""

    @abstractmethod
    def restore(self, state: Any) -> None:
        """Restore state captured by :meth:`snapshot`."""


class Token(ABC):
    """ERC20-style fungible ledger.

    The caller identity (``msg.sender`` on-chain) is passed explicitly.
    Transfers report failure by returning ``False``.
    """

    symbol: str

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """Balance held by *account*."""

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        """Amount *spender* may pull from *owner*."""

    @abstractmethod
    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Let *spender* pull up to *amount* from *owner*."""

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move *amount* from *sender* to *recipient*."""

    @abstractmethod
    def transfer_from(
        self, spender: str, sender: str, recipient: str, amount: int
    ) -> bool:
        """Move *amount* from *sender* to *recipient* using *spender*'s allowance."""


class StableUnitLedger(Token):
    """Ledger of the synthetic stable unit (owner-gated mint, self-service burn)."""

    @abstractmethod
    def mint(self, caller: str, to: str, amount: int) -> bool:
        """Create *amount* for *to*. Only the owner may mint."""

    @abstractmethod
    def burn(self, caller: str, amount: int) -> None:
        """Destroy *amount* from the caller's own balance. Owner only."""
