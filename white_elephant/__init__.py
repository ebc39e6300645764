"""
White elephant game engine.

Turn-based prize exchange: players buy tickets, a shuffled turn order is built
from external entropy, and each player in turn either opens a fresh prize or
steals one already opened. Key modules:

- registry: Depositor whitelist and dense 1-indexed ticket numbers.
- turn_order: Entropy-driven Fisher-Yates turn order.
- engine: Claim/steal/catch-up state machine with lazy turn timeouts.
- resolution: Final prize assignment from the recorded steal chain.
- game: Facade with phase gating, the prize ledger and a single lock.
- runner: Full-game simulation with baseline participants.
- metrics: Aggregation over NDJSON event streams.
- cli: Command line entry point for simulations.
- api: Starlette HTTP service around one shared game.
"""

from . import agents

__all__ = ["agents"]
