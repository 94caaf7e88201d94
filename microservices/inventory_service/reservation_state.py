"""
Reservation status state machine.

Pending -> Confirmed | Released | Expired | Failed. The four right-hand
states are terminal. All lifecycle decisions go through transition().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .models import ReservationStatus


class ReservationEvent(str, Enum):
    CONFIRM = "confirm"
    RELEASE = "release"
    EXPIRE = "expire"
    FAIL = "fail"


class TransitionKind(str, Enum):
    APPLY = "apply"      # move to target and mutate the ledger
    NOOP = "noop"        # already in the state this event leads to; succeed without mutation
    REFUSED = "refused"  # not allowed from the current state


@dataclass(frozen=True)
class Transition:
    kind: TransitionKind
    current: ReservationStatus
    target: Optional[ReservationStatus] = None

    @property
    def applies(self) -> bool:
        return self.kind is TransitionKind.APPLY


_TARGETS: Dict[ReservationEvent, ReservationStatus] = {
    ReservationEvent.CONFIRM: ReservationStatus.CONFIRMED,
    ReservationEvent.RELEASE: ReservationStatus.RELEASED,
    ReservationEvent.EXPIRE: ReservationStatus.EXPIRED,
    ReservationEvent.FAIL: ReservationStatus.FAILED,
}

# Terminal states reached by giving stock back
_FREED = {ReservationStatus.RELEASED, ReservationStatus.EXPIRED, ReservationStatus.FAILED}


def transition(current: ReservationStatus, event: ReservationEvent) -> Transition:
    """
    Decide what an event does to a reservation in `current` status.

    Releasing events (release, expire, fail) on an already freed reservation
    are idempotent no-ops, whichever freeing event got there first. Confirm
    on a confirmed reservation is a no-op. Confirm after freeing and any
    freeing event after confirm are refused.
    """
    if current is ReservationStatus.PENDING:
        return Transition(TransitionKind.APPLY, current, _TARGETS[event])

    if event is ReservationEvent.CONFIRM:
        if current is ReservationStatus.CONFIRMED:
            return Transition(TransitionKind.NOOP, current)
        return Transition(TransitionKind.REFUSED, current)

    if current in _FREED:
        return Transition(TransitionKind.NOOP, current)
    return Transition(TransitionKind.REFUSED, current)


__all__ = ["ReservationEvent", "TransitionKind", "Transition", "transition"]
