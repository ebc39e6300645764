"""
Factory helpers for baseline participants shipped with the simulator.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from .agents.base import load_agent
from .agents.chain_agent import ChainThief
from .agents.claim_agent import ClaimParticipant
from .agents.idle_agent import IdleParticipant
from .agents.random_agent import RandomParticipant

BASELINE_FACTORIES: Dict[str, Callable[..., Any]] = {
    "random": RandomParticipant,
    "claim": ClaimParticipant,
    "chain": ChainThief,
    "idle": IdleParticipant,
}


def make_baseline(name: str, **kwargs: Any):
    if name not in BASELINE_FACTORIES:
        raise ValueError(f"Unknown baseline {name}")
    factory = BASELINE_FACTORIES[name]
    try:
        return factory(**kwargs)
    except TypeError:
        if kwargs:
            raise
        return factory()


def make_participant(spec: str, **kwargs: Any):
    """
    Build a participant from ``baseline:<name>``, a bare baseline name, or a
    dotted ``pkg.module:Class`` path.
    """
    if spec.startswith("baseline:"):
        return make_baseline(spec.split(":", 1)[1], **kwargs)
    if ":" in spec:
        return load_agent(spec, **kwargs)
    return make_baseline(spec, **kwargs)
