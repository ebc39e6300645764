"""
Treasury gateway: the custody side of the game, specified only at its interface.

The game never moves assets itself. It calls a gateway at phase-gated points:
ticket payments and prize deposits before play, releases after resolution.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Protocol, Tuple


class TreasuryGateway(Protocol):
    def collect_payment(self, payer: str, amount: int) -> None:
        ...

    def record_prize_deposit(self, depositor: str, asset_ref: str) -> None:
        ...

    def release_asset(self, asset_ref: str, to: str) -> None:
        ...

    def release_funds(self, to: str, amount: int) -> None:
        ...


class InMemoryTreasury:
    """Ledger fake with an audit trail, used by the runner, the service and tests."""

    def __init__(self) -> None:
        self.balance = 0
        self.payments: Dict[str, int] = defaultdict(int)
        self.custody: Dict[str, str] = {}
        self.released_assets: Dict[str, str] = {}
        self.released_funds: List[Tuple[str, int]] = []

    def collect_payment(self, payer: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("payment must be non-negative")
        self.payments[payer] += amount
        self.balance += amount

    def record_prize_deposit(self, depositor: str, asset_ref: str) -> None:
        if asset_ref in self.custody:
            raise ValueError(f"asset {asset_ref!r} already in custody")
        self.custody[asset_ref] = depositor

    def release_asset(self, asset_ref: str, to: str) -> None:
        if asset_ref not in self.custody:
            raise ValueError(f"asset {asset_ref!r} is not in custody")
        del self.custody[asset_ref]
        self.released_assets[asset_ref] = to

    def release_funds(self, to: str, amount: int) -> None:
        if amount < 0 or amount > self.balance:
            raise ValueError(f"cannot release {amount} from balance {self.balance}")
        self.balance -= amount
        self.released_funds.append((to, amount))
