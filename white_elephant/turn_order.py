"""
Turn-order construction from externally supplied entropy.

Building the order is split in two so the engine never waits on the entropy
provider: ``request_order`` records a request token, and ``finalize_order``
shuffles the registered player numbers once the values for that token arrive.
"""

from __future__ import annotations

import itertools
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .errors import DependencyUnavailable, GameError, GameNotStarted, UnknownEntropyRequest
from .logging_utils import EventLog

DEFAULT_ORDER_CAPACITY = 255
EMPTY_SLOT = 0


class EntropySource(Protocol):
    def request_randomness(self, seed: int, num_values: int) -> str:
        ...


class SeededEntropySource:
    """
    Deterministic stand-in for an asynchronous randomness provider.

    ``request_randomness`` hands out a token; ``fulfil`` later produces the
    values for it, as the real provider's callback would.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, Tuple[int, int]] = {}
        self._counter = itertools.count(1)

    def request_randomness(self, seed: int, num_values: int) -> str:
        token = f"entropy-{next(self._counter)}"
        self._pending[token] = (seed, num_values)
        return token

    def fulfil(self, token: str) -> List[int]:
        if token not in self._pending:
            raise DependencyUnavailable(f"no entropy pending for {token!r}")
        seed, num_values = self._pending.pop(token)
        rng = random.Random(seed)
        return [rng.getrandbits(256) for _ in range(num_values)]


def values_needed(player_count: int) -> int:
    return max(player_count - 1, 1)


def build_permutation(
    player_count: int,
    entropy: Sequence[int],
    capacity: Optional[int] = None,
) -> List[int]:
    if capacity is not None and player_count > capacity:
        raise ValueError(f"{player_count} players exceed order capacity {capacity}")
    order = list(range(1, player_count + 1))
    if len(entropy) < player_count - 1:
        raise DependencyUnavailable(
            f"insufficient entropy: need {player_count - 1} values, got {len(entropy)}"
        )
    for step, index in enumerate(range(player_count - 1, 0, -1)):
        swap_with = int(entropy[step]) % (index + 1)
        order[index], order[swap_with] = order[swap_with], order[index]
    if capacity is not None:
        order.extend([EMPTY_SLOT] * (capacity - player_count))
    return order


def validate_order(order: Sequence[int], player_count: int) -> None:
    seen = set()
    for slot, number in enumerate(order):
        if number == EMPTY_SLOT:
            continue
        if not 1 <= number <= player_count:
            raise ValueError(f"slot {slot} holds unknown player {number}")
        if number in seen:
            raise ValueError(f"player {number} appears twice in the turn order")
        seen.add(number)
    if len(seen) != player_count:
        raise ValueError(f"turn order covers {len(seen)} of {player_count} players")


@dataclass(slots=True)
class OrderRequest:
    token: str
    seed: int
    player_count: int
    requested_at: float


class TurnOrderBuilder:
    def __init__(
        self,
        entropy: EntropySource,
        start_time: float,
        logger: EventLog,
        capacity: Optional[int] = None,
    ) -> None:
        self.entropy = entropy
        self.start_time = start_time
        self.capacity = capacity
        self.logger = logger
        self.pending: Optional[OrderRequest] = None

    def ensure_started(self, now: float) -> None:
        if now < self.start_time:
            raise GameNotStarted()

    def request_order(self, seed: int, player_count: int, now: float) -> OrderRequest:
        self.ensure_started(now)
        try:
            token = self.entropy.request_randomness(seed, values_needed(player_count))
        except GameError:
            raise
        except Exception as exc:
            raise DependencyUnavailable(f"entropy source failed: {exc}") from exc
        self.pending = OrderRequest(
            token=token,
            seed=seed,
            player_count=player_count,
            requested_at=now,
        )
        self.logger.log(
            "order_request",
            {"token": token, "seed": seed, "player_count": player_count},
        )
        return self.pending

    def finalize_order(self, token: str, values: Sequence[int], now: float) -> List[int]:
        self.ensure_started(now)
        request = self.pending
        if request is None or request.token != token:
            raise UnknownEntropyRequest()
        order = build_permutation(request.player_count, values, self.capacity)
        validate_order(order, request.player_count)
        self.pending = None
        self.logger.log(
            "order_final",
            {"token": token, "order": [number for number in order if number != EMPTY_SLOT]},
        )
        return order
