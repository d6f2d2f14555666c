"""Solvency engine: collateralized minting, redemption and liquidation of DSC.

Every state-changing entry point runs under a non-reentrant guard and a
transaction snapshot: if any step raises, the engine, the vault, the stable
coin ledger and the collateral ledgers are restored to their state at entry.
"""

from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence, TypeVar

from src.data.constants import (
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
    ORACLE_TIMEOUT_SECONDS,
    PRECISION,
    UINT256_MAX,
)
from src.data.interfaces import Journaled, PriceFeed, PriceOracle, StableUnitLedger, Token
from src.position.account import AccountInformation
from src.protocol.errors import (
    BreaksHealthFactor,
    BurnExceedsDebt,
    DebtToCoverTooSmall,
    HealthFactorNotImproved,
    HealthFactorOk,
    InsufficientCollateral,
    MintFailed,
    NeedsMoreThanZero,
    TokenAddressesAndPriceFeedAddressesMustBeSameLength,
    TokenNotAllowed,
    TransferFailed,
)
from src.protocol.guard import NonReentrant, transaction
from src.protocol.oracle import StalenessCheckedOracle
from src.protocol.valuation import ValuationService, checked
from src.protocol.vault import CollateralVault

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class Liquidation:
    liquidator: str
    user: str
    token: str
    debt_covered: int
    collateral_seized: int
    bonus: int
    health_factor_before: int
    health_factor_after: int


def calculate_health_factor(total_dsc_minted: int, collateral_value_in_usd: int) -> int:
    """Health factor (1e18 = 1.0) of a position.

    HF = collateral_usd * LIQUIDATION_THRESHOLD / LIQUIDATION_PRECISION / debt

    A position without debt saturates at ``UINT256_MAX``.
    """
    if total_dsc_minted == 0:
        return UINT256_MAX
    adjusted = collateral_value_in_usd * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION
    return checked(adjusted * PRECISION) // total_dsc_minted


def _state_changing(method: F) -> F:
    """Run *method* exclusively and atomically."""

    @functools.wraps(method)
    def wrapper(self: SolvencyEngine, *args: Any, **kwargs: Any) -> Any:
        with self._guard.enter(method.__name__):
            with transaction(self._participants(), method.__name__):
                return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class SolvencyEngine(Journaled):
    """Overcollateralized DSC engine.

    Parameters
    ----------
    collateral_tokens : Sequence[Token]
        Approved collateral ledgers. Each token's ``symbol`` is its asset id.
    price_feeds : Sequence[PriceFeed]
        One USD price feed per collateral token, in the same order.
    dsc : StableUnitLedger
        The stable coin ledger; the engine must own it to mint and burn.
    address : str
        The engine's account on the ledgers (custody of collateral and DSC).
    oracle : PriceOracle | None
        Overrides the staleness-checked oracle built from ``price_feeds``.
    oracle_timeout : int
        Seconds before a price round counts as stale.
    clock : Callable[[], float]
        Unix time source for staleness checks.
    """

    PRECISION = PRECISION
    ADDITIONAL_FEED_PRECISION = ADDITIONAL_FEED_PRECISION
    LIQUIDATION_THRESHOLD = LIQUIDATION_THRESHOLD
    LIQUIDATION_BONUS = LIQUIDATION_BONUS
    LIQUIDATION_PRECISION = LIQUIDATION_PRECISION
    MIN_HEALTH_FACTOR = MIN_HEALTH_FACTOR

    def __init__(
        self,
        collateral_tokens: Sequence[Token],
        price_feeds: Sequence[PriceFeed],
        dsc: StableUnitLedger,
        address: str = "dsc-engine",
        oracle: PriceOracle | None = None,
        oracle_timeout: int = ORACLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if len(collateral_tokens) != len(price_feeds):
            raise TokenAddressesAndPriceFeedAddressesMustBeSameLength(
                len(collateral_tokens), len(price_feeds)
            )

        self.address = address
        self.dsc = dsc
        self.events: list[Any] = []
        tokens = {token.symbol: token for token in collateral_tokens}
        self.vault = CollateralVault(address, tokens, events=self.events)
        self.oracle = oracle or StalenessCheckedOracle(
            dict(zip(tokens, price_feeds)), timeout=oracle_timeout, clock=clock
        )
        self.valuation = ValuationService(self.oracle, self.vault.assets)

        self._minted: dict[str, int] = {}
        self._users: list[str] = []
        self._guard = NonReentrant()

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    def _participants(self) -> list[Any]:
        tokens = [self.vault.token(asset) for asset in self.vault.assets]
        return [self, self.vault, self.dsc, *tokens]

    def snapshot(self) -> Any:
        return (dict(self._minted), list(self._users), len(self.events))

    def restore(self, state: Any) -> None:
        minted, users, n_events = state
        self._minted = dict(minted)
        self._users = list(users)
        del self.events[n_events:]

    def _touch(self, user: str) -> None:
        if user not in self._minted:
            self._minted[user] = 0
            self._users.append(user)

    # ------------------------------------------------------------------
    # State-changing entry points
    # ------------------------------------------------------------------

    @_state_changing
    def deposit(self, user: str, asset: str, amount: int) -> None:
        """Lock *amount* of *asset* from *user* as collateral."""
        self._deposit(user, asset, amount)

    @_state_changing
    def mint(self, user: str, amount: int) -> None:
        """Mint *amount* DSC to *user* against their collateral."""
        self._mint(user, amount)

    @_state_changing
    def deposit_and_mint(
        self, user: str, asset: str, collateral_amount: int, mint_amount: int
    ) -> None:
        self._deposit(user, asset, collateral_amount)
        self._mint(user, mint_amount)

    @_state_changing
    def redeem(self, user: str, asset: str, amount: int) -> None:
        """Return *amount* of *asset* to *user* if they stay solvent."""
        self._redeem(asset, amount, user, user)

    @_state_changing
    def burn(self, user: str, amount: int) -> None:
        """Repay *amount* of *user*'s debt with DSC they approved to the engine."""
        self._burn(amount, on_behalf_of=user, dsc_from=user)
        self._revert_if_health_factor_is_broken(user)

    @_state_changing
    def burn_and_redeem(
        self, user: str, burn_amount: int, asset: str, redeem_amount: int
    ) -> None:
        self._burn(burn_amount, on_behalf_of=user, dsc_from=user)
        self._redeem(asset, redeem_amount, user, user)

    @_state_changing
    def liquidate(
        self, liquidator: str, asset: str, user: str, debt_to_cover: int
    ) -> Liquidation:
        """Repay part of an insolvent *user*'s debt and seize their *asset*.

        The liquidator pays ``debt_to_cover`` DSC and receives collateral of
        equal USD value plus a 10% bonus. If the position cannot fund the
        whole bonus, the bonus is capped at what is left of that asset.
        """
        if debt_to_cover <= 0:
            raise NeedsMoreThanZero()
        if not self.vault.is_allowed(asset):
            raise TokenNotAllowed(asset)

        starting_health_factor = self.health_factor(user)
        if starting_health_factor >= MIN_HEALTH_FACTOR:
            raise HealthFactorOk(user, starting_health_factor)

        collateral_from_debt = self.valuation.asset_amount_from_usd(asset, debt_to_cover)
        if collateral_from_debt == 0:
            raise DebtToCoverTooSmall(asset, debt_to_cover)
        bonus = collateral_from_debt * LIQUIDATION_BONUS // LIQUIDATION_PRECISION
        available = self.vault.balance_of(user, asset)
        if available < collateral_from_debt:
            raise InsufficientCollateral(user, asset, available, collateral_from_debt)
        bonus = min(bonus, available - collateral_from_debt)

        self.vault.withdraw(asset, collateral_from_debt + bonus, user, liquidator)
        self._burn(debt_to_cover, on_behalf_of=user, dsc_from=liquidator)

        ending_health_factor = self.health_factor(user)
        if ending_health_factor <= starting_health_factor:
            raise HealthFactorNotImproved(starting_health_factor, ending_health_factor)
        self._revert_if_health_factor_is_broken(liquidator)

        event = Liquidation(
            liquidator=liquidator,
            user=user,
            token=asset,
            debt_covered=debt_to_cover,
            collateral_seized=collateral_from_debt,
            bonus=bonus,
            health_factor_before=starting_health_factor,
            health_factor_after=ending_health_factor,
        )
        self.events.append(event)
        logger.info(
            "Liquidated %s: %s DSC covered by %s for %s %s (+%s bonus)",
            user,
            debt_to_cover,
            liquidator,
            collateral_from_debt,
            asset,
            bonus,
        )
        return event

    # ------------------------------------------------------------------
    # Internal steps (no guard; composed by the entry points above)
    # ------------------------------------------------------------------

    def _deposit(self, user: str, asset: str, amount: int) -> None:
        self._touch(user)
        self.vault.deposit(user, asset, amount)

    def _mint(self, user: str, amount: int) -> None:
        if amount <= 0:
            raise NeedsMoreThanZero()
        self._touch(user)
        self._minted[user] = checked(self._minted[user] + amount)
        self._revert_if_health_factor_is_broken(user)
        if not self.dsc.mint(self.address, user, amount):
            raise MintFailed(user, amount)
        logger.info("Minted %s DSC to %s", amount, user)

    def _redeem(self, asset: str, amount: int, from_user: str, to: str) -> None:
        self.vault.withdraw(
            asset,
            amount,
            from_user,
            to,
            before_transfer=lambda: self._revert_if_health_factor_is_broken(from_user),
        )

    def _burn(self, amount: int, on_behalf_of: str, dsc_from: str) -> None:
        if amount <= 0:
            raise NeedsMoreThanZero()
        debt = self.get_minted_debt(on_behalf_of)
        if amount > debt:
            raise BurnExceedsDebt(debt, amount)
        self._minted[on_behalf_of] = debt - amount

        if not self.dsc.transfer_from(self.address, dsc_from, self.address, amount):
            raise TransferFailed(self.dsc.symbol, dsc_from, self.address, amount)
        self.dsc.burn(self.address, amount)
        logger.info("Burned %s DSC from %s on behalf of %s", amount, dsc_from, on_behalf_of)

    def _revert_if_health_factor_is_broken(self, user: str) -> None:
        health_factor = self.health_factor(user)
        if health_factor < MIN_HEALTH_FACTOR:
            raise BreaksHealthFactor(health_factor)

    # ------------------------------------------------------------------
    # Health factor
    # ------------------------------------------------------------------

    def health_factor(self, user: str) -> int:
        info = self.get_account_information(user)
        return calculate_health_factor(info.total_dsc_minted, info.collateral_value_in_usd)

    def assert_solvent(self, user: str) -> None:
        """Raise ``BreaksHealthFactor`` if *user* is below the minimum."""
        self._revert_if_health_factor_is_broken(user)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_account_information(self, user: str) -> AccountInformation:
        return AccountInformation(
            total_dsc_minted=self.get_minted_debt(user),
            collateral_value_in_usd=self.get_account_collateral_value(user),
        )

    def get_health_factor(self, user: str) -> int:
        return self.health_factor(user)

    def calculate_health_factor(
        self, total_dsc_minted: int, collateral_value_in_usd: int
    ) -> int:
        return calculate_health_factor(total_dsc_minted, collateral_value_in_usd)

    def get_account_collateral_value(self, user: str) -> int:
        return self.valuation.total_collateral_usd(self.vault.balances(user))

    def get_usd_value(self, asset: str, amount: int) -> int:
        return self.valuation.usd_value(asset, amount)

    def get_token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return self.valuation.asset_amount_from_usd(asset, usd_amount)

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        return self.vault.balance_of(user, asset)

    def get_minted_debt(self, user: str) -> int:
        return self._minted.get(user, 0)

    def get_collateral_tokens(self) -> tuple[str, ...]:
        return self.vault.assets

    def get_collateral_token_price_feed(self, asset: str) -> Any:
        return self.oracle.price_feed(asset)

    def get_users(self) -> tuple[str, ...]:
        return tuple(self._users)

    def get_dsc(self) -> StableUnitLedger:
        return self.dsc

    # ------------------------------------------------------------------
    # Protocol constants
    # ------------------------------------------------------------------

    def get_precision(self) -> int:
        return PRECISION

    def get_additional_feed_precision(self) -> int:
        return ADDITIONAL_FEED_PRECISION

    def get_liquidation_threshold(self) -> int:
        return LIQUIDATION_THRESHOLD

    def get_liquidation_bonus(self) -> int:
        return LIQUIDATION_BONUS

    def get_liquidation_precision(self) -> int:
        return LIQUIDATION_PRECISION

    def get_min_health_factor(self) -> int:
        return MIN_HEALTH_FACTOR
