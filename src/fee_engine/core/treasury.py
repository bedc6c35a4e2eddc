"""Keeper incentive treasury.

Holds the balance from which keepers are paid for triggering volatility
updates, and performs the payout through a pluggable transfer function.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fee_engine.domain.errors import ConfigurationError, IncentivePaymentError

logger = logging.getLogger(__name__)

# Moves amount to recipient; raising means the transfer failed
TransferFn = Callable[[str, int], None]


class IncentiveTreasury:
    """Balance and payout ledger for keeper incentives.

    Tracks:
    - Available balance
    - Total paid per recipient

    Thread-safety: This class is NOT thread-safe. External synchronization
    is required if accessed from multiple threads.
    """

    def __init__(
        self,
        balance: int = 0,
        transfer: TransferFn | None = None,
    ) -> None:
        """Initialize the treasury.

        Args:
            balance: Starting balance in base units
            transfer: Function that delivers a payout; defaults to
                crediting the in-memory ledger only
        """
        if balance < 0:
            raise ConfigurationError("Treasury balance must be non-negative", "balance")
        self._balance = balance
        self._transfer = transfer
        self._paid: dict[str, int] = {}

    @property
    def balance(self) -> int:
        """Return the available balance."""
        return self._balance

    @property
    def total_paid(self) -> int:
        """Return the sum of all payouts."""
        return sum(self._paid.values())

    def paid_to(self, recipient: str) -> int:
        """Return the total paid to a recipient."""
        return self._paid.get(recipient, 0)

    def deposit(self, amount: int) -> None:
        """Add funds to the treasury.

        Args:
            amount: Positive amount in base units
        """
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")
        self._balance += amount

    def can_pay(self, amount: int) -> bool:
        """Return True if a payout of amount would be attempted."""
        return amount > 0 and self._balance >= amount

    def pay(self, recipient: str, amount: int) -> bool:
        """Pay an incentive if the balance allows it.

        An underfunded treasury is not an error: the payout is skipped
        and False is returned. A failing transfer is an error.

        Args:
            recipient: Identity to pay
            amount: Amount in base units

        Returns:
            True if paid, False if skipped

        Raises:
            IncentivePaymentError: If the transfer itself fails
        """
        if amount <= 0:
            return False
        if self._balance < amount:
            logger.warning(
                f"Treasury balance {self._balance} below incentive {amount}, "
                f"skipping payment to {recipient}"
            )
            return False

        if self._transfer is not None:
            try:
                self._transfer(recipient, amount)
            except Exception as e:
                raise IncentivePaymentError(recipient, amount, str(e)) from e

        self._balance -= amount
        self._paid[recipient] = self._paid.get(recipient, 0) + amount
        return True
