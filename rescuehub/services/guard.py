"""Authorization guard for rescue request transitions.

``can_transition`` is a pure decision over (principal, request, transition):
it never touches the database. It separates "you may not do this at all"
(ForbiddenError) from "you may, but not while the request is in this status"
(InvalidStateError) so the client can tell the two apart.

| Transition | Who                                      | Current status            |
|------------|------------------------------------------|---------------------------|
| submit     | any authenticated user                   | -                         |
| assign     | rescuer (self) or admin (names rescuer)  | open                      |
| start      | any rescuer; only the assignee if assigned | open, assigned          |
| complete   | the assigned rescuer                     | in_progress               |
| cancel     | admin                                    | not completed / cancelled |
| set_status | admin                                    | target is a valid status  |
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from rescuehub.models.enums import RescueStatus, Role
from rescuehub.models.rescue_request import RescueRequest
from rescuehub.services.auth import AuthContext
from rescuehub.services.errors import (
    RescueError, ConflictError, ForbiddenError, InvalidStateError, ValidationError,
)


class Transition(str, Enum):
    SUBMIT = "submit"
    ASSIGN = "assign"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    SET_STATUS = "set_status"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""
    error: type[RescueError] | None = None

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise self.error(self.reason)


ALLOW = Decision(allowed=True)


def _forbid(reason: str) -> Decision:
    return Decision(False, reason, ForbiddenError)


def _wrong_state(reason: str) -> Decision:
    return Decision(False, reason, InvalidStateError)


def can_transition(
    principal: AuthContext | None,
    request: RescueRequest | None,
    transition: Transition,
    target: RescueStatus | str | None = None,
) -> Decision:
    if principal is None:
        return _forbid("Authentication required")

    if transition is Transition.SUBMIT:
        return ALLOW

    if request is None:
        raise ValueError(f"{transition.value} needs an existing rescue request")

    status = RescueStatus(request.status)
    role = principal.role

    if transition is Transition.ASSIGN:
        if role not in (Role.RESCUER.value, Role.ADMIN.value):
            return _forbid("Only rescuers or admins can assign rescue requests")
        if status is not RescueStatus.OPEN:
            return _wrong_state(f"Cannot assign request. Current status: {status.value}")
        return ALLOW

    if transition is Transition.START:
        if role != Role.RESCUER.value:
            return _forbid("Only rescuers can start a rescue")
        if status is RescueStatus.ASSIGNED and request.assigned_rescuer_id != principal.user_id:
            return _forbid("This rescue is assigned to another rescuer")
        if status is RescueStatus.IN_PROGRESS:
            # Another start won the race.
            return Decision(False, "Rescue is already in progress", ConflictError)
        if status not in (RescueStatus.OPEN, RescueStatus.ASSIGNED):
            return _wrong_state(f"Rescue is already {status.value}")
        return ALLOW

    if transition is Transition.COMPLETE:
        if role != Role.RESCUER.value or request.assigned_rescuer_id != principal.user_id:
            return _forbid("You can only complete rescues you started")
        if status is not RescueStatus.IN_PROGRESS:
            return _wrong_state(f"Rescue is not in progress. Current status: {status.value}")
        return ALLOW

    if transition is Transition.CANCEL:
        if role != Role.ADMIN.value:
            return _forbid("Only admins can cancel rescue requests")
        if status.is_terminal:
            return _wrong_state(f"Rescue request is already {status.value}")
        return ALLOW

    if transition is Transition.SET_STATUS:
        if role != Role.ADMIN.value:
            return _forbid("Only admins can set rescue request status")
        parsed = target if isinstance(target, RescueStatus) else RescueStatus.parse(target)
        if parsed is None:
            valid = ", ".join(s.value for s in RescueStatus)
            return Decision(False, f"Invalid status. Must be one of: {valid}", ValidationError)
        return ALLOW

    raise ValueError(f"Unknown transition: {transition}")


def check_transition(
    principal: AuthContext | None,
    request: RescueRequest | None,
    transition: Transition,
    target: RescueStatus | str | None = None,
) -> None:
    """Raise the mapped error if ``can_transition`` denies."""
    can_transition(principal, request, transition, target).raise_if_denied()
