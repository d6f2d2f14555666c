"""Collateral vault: per-user, per-asset record of locked collateral."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from src.data.interfaces import Journaled, Token
from src.protocol.errors import (
    InsufficientCollateral,
    NeedsMoreThanZero,
    TokenNotAllowed,
    TransferFailed,
)
from src.protocol.valuation import checked

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollateralDeposited:
    user: str
    token: str
    amount: int


@dataclass(frozen=True)
class CollateralRedeemed:
    redeemed_from: str
    redeemed_to: str
    token: str
    amount: int


class CollateralVault(Journaled):
    """Authoritative ledger of deposited collateral, custodied at ``custodian``.

    Parameters
    ----------
    custodian : str
        Account that holds deposited tokens (the engine's address).
    tokens : Mapping[str, Token]
        Approved collateral ledgers keyed by asset identifier. Order is
        preserved and fixed for the life of the vault.
    events : list | None
        Event log to append to, shared with the engine.
    """

    def __init__(
        self,
        custodian: str,
        tokens: Mapping[str, Token],
        events: list[Any] | None = None,
    ) -> None:
        self.custodian = custodian
        self._tokens = dict(tokens)
        self.assets: tuple[str, ...] = tuple(self._tokens)
        self._balances: dict[str, dict[str, int]] = {}
        self.events: list[Any] = events if events is not None else []

    def _require_allowed(self, asset: str) -> Token:
        token = self._tokens.get(asset)
        if token is None:
            raise TokenNotAllowed(asset)
        return token

    def is_allowed(self, asset: str) -> bool:
        return asset in self._tokens

    def token(self, asset: str) -> Token:
        return self._require_allowed(asset)

    def balance_of(self, user: str, asset: str) -> int:
        return self._balances.get(user, {}).get(asset, 0)

    def balances(self, user: str) -> dict[str, int]:
        """Deposited amount of every approved asset for *user* (zeros included)."""
        held = self._balances.get(user, {})
        return {asset: held.get(asset, 0) for asset in self.assets}

    def deposit(self, user: str, asset: str, amount: int) -> None:
        """Credit *user* and pull *amount* of *asset* into custody."""
        if amount <= 0:
            raise NeedsMoreThanZero()
        token = self._require_allowed(asset)

        credited = checked(self.balance_of(user, asset) + amount)
        self._balances.setdefault(user, {})[asset] = credited
        self.events.append(CollateralDeposited(user=user, token=asset, amount=amount))
        logger.info("Collateral deposited: %s %s by %s", amount, asset, user)

        if not token.transfer_from(self.custodian, user, self.custodian, amount):
            raise TransferFailed(asset, user, self.custodian, amount)

    def withdraw(
        self,
        asset: str,
        amount: int,
        from_user: str,
        to: str,
        before_transfer: Callable[[], None] | None = None,
    ) -> None:
        """Debit *from_user* and push *amount* of *asset* to *to*.

        ``before_transfer`` runs after the debit and before the token leaves
        custody, so checks see the post-withdrawal balances.
        """
        if amount <= 0:
            raise NeedsMoreThanZero()
        token = self._require_allowed(asset)

        balance = self.balance_of(from_user, asset)
        if balance < amount:
            raise InsufficientCollateral(from_user, asset, balance, amount)
        self._balances[from_user][asset] = balance - amount
        self.events.append(
            CollateralRedeemed(
                redeemed_from=from_user, redeemed_to=to, token=asset, amount=amount
            )
        )
        logger.info("Collateral redeemed: %s %s from %s to %s", amount, asset, from_user, to)

        if before_transfer is not None:
            before_transfer()

        if not token.transfer(self.custodian, to, amount):
            raise TransferFailed(asset, self.custodian, to, amount)

    def snapshot(self) -> Any:
        return (
            {user: dict(held) for user, held in self._balances.items()},
            len(self.events),
        )

    def restore(self, state: Any) -> None:
        balances, n_events = state
        self._balances = {user: dict(held) for user, held in balances.items()}
        del self.events[n_events:]
