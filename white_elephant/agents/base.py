"""
Participant base interfaces.
"""

from __future__ import annotations

import importlib
from typing import Any, Protocol

from ..schemas import TurnDecision, TurnRequest


class ParticipantProtocol(Protocol):
    name: str

    def reset(self, player_id: str, game_info: dict) -> None:
        ...

    def act(self, request: TurnRequest) -> TurnDecision:
        ...


def load_agent(dotted_path: str, **kwargs: Any) -> ParticipantProtocol:
    """
    Dynamically import a participant class from a dotted path "module:Class".
    """
    if ":" not in dotted_path:
        raise ValueError("Participant dotted path must look like 'package.module:ClassName'")
    module_name, class_name = dotted_path.split(":", 1)
    module = importlib.import_module(module_name)
    participant_cls = getattr(module, class_name)
    return participant_cls(**kwargs)
