"""
Baseline participants shipped with the simulator.
"""

from . import base
from .random_agent import RandomParticipant
from .claim_agent import ClaimParticipant
from .chain_agent import ChainThief
from .idle_agent import IdleParticipant

__all__ = [
    "base",
    "RandomParticipant",
    "ClaimParticipant",
    "ChainThief",
    "IdleParticipant",
]
