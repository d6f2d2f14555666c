"""In-memory fungible token ledgers: collateral tokens and the stable coin."""

from __future__ import annotations

import logging
from typing import Any

from src.data.constants import ZERO_ADDRESS
from src.data.interfaces import Journaled, StableUnitLedger, Token

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised by a ledger when it refuses an operation outright."""


class NotOwner(LedgerError, PermissionError):
    def __init__(self, caller: str) -> None:
        super().__init__(f"{caller} is not the ledger owner")
        self.caller = caller


class ERC20Token(Token, Journaled):
    """Balance/allowance ledger with ERC20 semantics.

    Transfers that cannot be honoured return ``False`` instead of raising,
    like a non-reverting ERC20.
    """

    def __init__(self, symbol: str, decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol!r})"

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        self._move(sender, recipient, amount)
        return True

    def transfer_from(
        self, spender: str, sender: str, recipient: str, amount: int
    ) -> bool:
        allowed = self.allowance(sender, spender)
        if amount < 0 or allowed < amount or self.balance_of(sender) < amount:
            return False
        self._allowances[(sender, spender)] = allowed - amount
        self._move(sender, recipient, amount)
        return True

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def _mint(self, to: str, amount: int) -> None:
        self._balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def _burn(self, account: str, amount: int) -> None:
        self._balances[account] = self.balance_of(account) - amount
        self.total_supply -= amount

    def faucet(self, to: str, amount: int) -> None:
        """Credit *to* out of thin air (test/local networks only)."""
        self._mint(to, amount)

    def snapshot(self) -> Any:
        return (dict(self._balances), dict(self._allowances), self.total_supply)

    def restore(self, state: Any) -> None:
        balances, allowances, total_supply = state
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self.total_supply = total_supply


class StableCoin(ERC20Token, StableUnitLedger):
    """The synthetic dollar. Only the owner (the engine) may mint or burn."""

    def __init__(self, owner: str, symbol: str = "DSC") -> None:
        super().__init__(symbol, decimals=18)
        self.owner = owner

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwner(caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        if new_owner == ZERO_ADDRESS:
            raise LedgerError("New owner is the zero address")
        logger.info("%s ownership transferred from %s to %s", self.symbol, self.owner, new_owner)
        self.owner = new_owner

    def mint(self, caller: str, to: str, amount: int) -> bool:
        self._only_owner(caller)
        if to == ZERO_ADDRESS:
            raise LedgerError("Cannot mint to the zero address")
        if amount <= 0:
            raise LedgerError("Mint amount must be more than zero")
        self._mint(to, amount)
        return True

    def burn(self, caller: str, amount: int) -> None:
        self._only_owner(caller)
        if amount <= 0:
            raise LedgerError("Burn amount must be more than zero")
        if self.balance_of(caller) < amount:
            raise LedgerError("Burn amount exceeds balance")
        self._burn(caller, amount)

    def snapshot(self) -> Any:
        return (super().snapshot(), self.owner)

    def restore(self, state: Any) -> None:
        token_state, owner = state
        super().restore(token_state)
        self.owner = owner
