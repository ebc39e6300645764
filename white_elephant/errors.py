"""
Error taxonomy for rejected game actions.

Every failure is local and recoverable by the caller: the game state is left
as it was and the caller may retry with corrected input. Messages of the core
errors are part of the observable contract and must not change.
"""

from __future__ import annotations

from typing import Optional


class GameError(RuntimeError):
    category = "GameError"
    message = "action rejected"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


class AccessDenied(GameError):
    category = "AccessDenied"
    message = "access denied"


class NotWhitelisted(AccessDenied):
    message = "you are not allowed to deposit"


class NotOwner(AccessDenied):
    message = "caller is not the owner"


class NotAPlayer(AccessDenied):
    message = "caller holds no ticket"


class PhaseViolation(GameError):
    category = "PhaseViolation"
    message = "action not allowed in this phase"


class GameNotStarted(PhaseViolation):
    message = "game has not started yet"


class TicketSaleClosed(PhaseViolation):
    message = "ticket sale is closed"


class DepositsClosed(PhaseViolation):
    message = "deposits are closed"


class GameNotActive(PhaseViolation):
    message = "game is not active"


class UnknownEntropyRequest(PhaseViolation):
    message = "unknown entropy request"


class OrderAlreadyFinalized(PhaseViolation):
    message = "turn order already finalized"


class TurnsRemaining(PhaseViolation):
    message = "turns remaining"


class GameNotResolved(PhaseViolation):
    message = "game has not been resolved"


class TurnViolation(GameError):
    category = "TurnViolation"
    message = "turn rule violated"


class NotYourTurn(TurnViolation):
    message = "not your turn"


class SkipDebtOutstanding(TurnViolation):
    message = "playersSkipped not zero"


class FinalSwapUnavailable(TurnViolation):
    message = "final swap not available"


class StealViolation(GameError):
    category = "StealViolation"
    message = "steal not allowed"


class TargetNotClaimed(StealViolation):
    message = "target has not claimed a prize"


class DuplicateSteal(StealViolation):
    message = "cant steal from them again"


class PrizeMismatch(StealViolation):
    message = "target no longer holds that prize"


class StateViolation(GameError):
    category = "StateViolation"
    message = "invalid state"


class DuplicateTicket(StateViolation):
    message = "cant buy more"


class IncorrectPayment(StateViolation):
    message = "incorrect ticket price"


class GameFull(StateViolation):
    message = "no tickets left"


class UnknownDeposit(StateViolation):
    message = "unknown deposit"


class PrizeAlreadyReleased(StateViolation):
    message = "prize already released"


class DependencyUnavailable(GameError):
    category = "DependencyUnavailable"
    message = "dependency unavailable"
