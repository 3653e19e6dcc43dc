"""Reconciliation status state machine.

Each status change on a reconciliation record is validated by a
short-lived FSM instance positioned at the record's current status.
The FSM is purely a validation tool: the record store applies the
change to the record itself.

Every transition is user-initiated except ``pending -> matched``, which
the aggregator also performs when the vocabulary grows a matching entry.
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from archlens.entities.models import ReconciliationStatus
from archlens.errors import InvalidTransitionError


class ReconciliationSM(StateMachine):
    """Four-state lifecycle of a reconciliation record.

    States:
        pending  -- Extracted, not yet decided.
        matched  -- Linked to an authority record.
        rejected -- Explicitly not an entity worth tracking.
        custom   -- Kept in the project index without an authority link.

    No state has ``final=True``: rejected and custom are sticky against
    automatic changes but always open to explicit reassignment.
    """

    pending = State("pending", initial=True, value="pending")
    matched = State("matched", value="matched")
    rejected = State("rejected", value="rejected")
    custom = State("custom", value="custom")

    # matched -> matched is a re-match to a different authority
    match = (
        pending.to(matched)
        | matched.to(matched)
        | rejected.to(matched)
        | custom.to(matched)
    )
    unlink = matched.to(pending) | rejected.to(pending) | custom.to(pending)
    reject = pending.to(rejected) | matched.to(rejected) | custom.to(rejected)
    make_custom = pending.to(custom) | matched.to(custom) | rejected.to(custom)


def create_fsm(current: ReconciliationStatus | str) -> ReconciliationSM:
    """Create an FSM instance at the given status."""
    return ReconciliationSM(start_value=ReconciliationStatus(current).value)


def check_transition(current: ReconciliationStatus | str, event: str) -> ReconciliationStatus:
    """Validate *event* from *current* and return the resulting status.

    Raises:
        InvalidTransitionError: If the event is not allowed from *current*.
    """
    sm = create_fsm(current)
    try:
        sm.send(event)
    except TransitionNotAllowed as e:
        raise InvalidTransitionError(
            f"Cannot {event.replace('_', ' ')} a record in status {ReconciliationStatus(current).value!r}"
        ) from e
    return ReconciliationStatus(sm.current_state_value)
