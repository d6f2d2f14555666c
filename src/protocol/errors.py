"""Engine error taxonomy.

Every error aborts the whole engine call; state is rolled back before the
exception reaches the caller.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine failures."""


# --- Input validation ---


class InvalidInput(EngineError, ValueError):
    """Rejected before any state is touched."""


class NeedsMoreThanZero(InvalidInput):
    def __init__(self) -> None:
        super().__init__("Amount must be more than zero")


class TokenNotAllowed(InvalidInput):
    def __init__(self, token: str) -> None:
        super().__init__(f"Token not allowed as collateral: {token}")
        self.token = token


class TokenAddressesAndPriceFeedAddressesMustBeSameLength(InvalidInput):
    def __init__(self, n_tokens: int, n_feeds: int) -> None:
        super().__init__(
            f"Got {n_tokens} collateral tokens but {n_feeds} price feeds"
        )
        self.n_tokens = n_tokens
        self.n_feeds = n_feeds


class DebtToCoverTooSmall(InvalidInput):
    def __init__(self, token: str, debt_to_cover: int) -> None:
        super().__init__(f"Covering {debt_to_cover} DSC is worth less than one unit of {token}")
        self.token = token
        self.debt_to_cover = debt_to_cover


# --- Arithmetic ---


class EngineArithmeticError(EngineError, ArithmeticError):
    """Underflow/overflow detected explicitly instead of wrapping."""


class InsufficientCollateral(EngineArithmeticError):
    def __init__(self, user: str, token: str, balance: int, requested: int) -> None:
        super().__init__(
            f"{user} has {balance} of {token} deposited, cannot remove {requested}"
        )
        self.user = user
        self.token = token
        self.balance = balance
        self.requested = requested


class BurnExceedsDebt(EngineArithmeticError):
    def __init__(self, debt: int, amount: int) -> None:
        super().__init__(f"Cannot burn {amount}, minted debt is {debt}")
        self.debt = debt
        self.amount = amount


class ArithmeticOverflow(EngineArithmeticError):
    def __init__(self, value: int) -> None:
        super().__init__(f"Intermediate value {value} exceeds uint256")
        self.value = value


# --- External dependencies ---


class ExternalDependencyError(EngineError):
    """A collaborator (oracle, token, ledger) refused the request."""


class OracleStale(ExternalDependencyError):
    def __init__(self, asset: str, price: int | None = None) -> None:
        super().__init__(f"Stale or invalid price for {asset}: {price}")
        self.asset = asset
        self.price = price


class TransferFailed(ExternalDependencyError):
    def __init__(self, token: str, sender: str, recipient: str, amount: int) -> None:
        super().__init__(f"Transfer of {amount} {token} from {sender} to {recipient} failed")
        self.token = token
        self.sender = sender
        self.recipient = recipient
        self.amount = amount


class MintFailed(ExternalDependencyError):
    def __init__(self, to: str, amount: int) -> None:
        super().__init__(f"Ledger refused to mint {amount} to {to}")
        self.to = to
        self.amount = amount


# --- Invariant violations ---


class InvariantViolation(EngineError):
    """A solvency rule would not hold after the call."""


class BreaksHealthFactor(InvariantViolation):
    def __init__(self, health_factor: int) -> None:
        super().__init__(f"Health factor {health_factor} is below the minimum")
        self.health_factor = health_factor


class HealthFactorOk(InvariantViolation):
    def __init__(self, user: str, health_factor: int) -> None:
        super().__init__(f"{user} is solvent (health factor {health_factor})")
        self.user = user
        self.health_factor = health_factor


class HealthFactorNotImproved(InvariantViolation):
    def __init__(self, before: int, after: int) -> None:
        super().__init__(f"Health factor went from {before} to {after}")
        self.before = before
        self.after = after


# --- Scheduling ---


class ReentrantCall(EngineError):
    def __init__(self, entry_point: str) -> None:
        super().__init__(f"Reentrant call into {entry_point}")
        self.entry_point = entry_point
