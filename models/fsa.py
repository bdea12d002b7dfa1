"""
Process finite-state machine for the Deadlock Detection Simulator.

States and events are closed enumerations; the transition table is a plain
mapping over (state, event) pairs. Pairs missing from the table are illegal
and raise ProtocolViolation.
"""

from enum import Enum
from typing import Dict, Tuple

from models.errors import ProtocolViolation


class ProcessState(Enum):
    """Lifecycle states of a simulated process."""
    IDLE = "IDLE"
    WAITING = "WAITING"
    HOLDING = "HOLDING"
    BLOCKED = "BLOCKED"


class FSAEvent(Enum):
    """Events that drive a process between states."""
    REQUEST = "REQUEST"
    GRANT = "GRANT"
    RELEASE = "RELEASE"
    MARK_DEADLOCKED = "MARK_DEADLOCKED"
    CLEAR = "CLEAR"


# Outcome selectors for events with two possible targets
GRANTED = "granted"
INSUFFICIENT = "insufficient"
STILL_HOLDING = "still_holding"
EMPTY = "empty"
ALWAYS = "always"


# (state, event) -> {outcome: new_state}
TRANSITIONS: Dict[Tuple[ProcessState, FSAEvent], Dict[str, ProcessState]] = {
    (ProcessState.IDLE, FSAEvent.REQUEST): {
        GRANTED: ProcessState.HOLDING,
        INSUFFICIENT: ProcessState.WAITING,
    },
    (ProcessState.HOLDING, FSAEvent.REQUEST): {
        GRANTED: ProcessState.HOLDING,
        INSUFFICIENT: ProcessState.WAITING,
    },
    (ProcessState.WAITING, FSAEvent.GRANT): {ALWAYS: ProcessState.HOLDING},
    (ProcessState.WAITING, FSAEvent.MARK_DEADLOCKED): {ALWAYS: ProcessState.BLOCKED},
    (ProcessState.BLOCKED, FSAEvent.GRANT): {ALWAYS: ProcessState.HOLDING},
    (ProcessState.HOLDING, FSAEvent.RELEASE): {
        STILL_HOLDING: ProcessState.HOLDING,
        EMPTY: ProcessState.IDLE,
    },
    (ProcessState.BLOCKED, FSAEvent.CLEAR): {ALWAYS: ProcessState.WAITING},
}


def no_transition(state: ProcessState, event: FSAEvent, detail: str = "") -> ProtocolViolation:
    """Build the ProtocolViolation raised for an illegal (state, event) pair."""
    message = f"No transition for event {event.value} from state {state.value}"
    if detail:
        message += f" ({detail})"
    return ProtocolViolation(message)


def can_transition(state: ProcessState, event: FSAEvent) -> bool:
    """Check whether (state, event) appears in the transition table."""
    return (state, event) in TRANSITIONS


def transition(state: ProcessState, event: FSAEvent, outcome: str = ALWAYS) -> ProcessState:
    """
    Apply an event to a state.

    Args:
        state: Current process state
        event: Event being applied
        outcome: Selector for events with two targets (GRANTED/INSUFFICIENT
            for REQUEST, STILL_HOLDING/EMPTY for RELEASE)

    Returns:
        The new process state

    Raises:
        ProtocolViolation: If the table has no entry for (state, event)
    """
    targets = TRANSITIONS.get((state, event))
    if targets is None:
        raise no_transition(state, event)
    if outcome not in targets:
        raise ValueError(f"Unknown outcome '{outcome}' for {event.value} from {state.value}")
    return targets[outcome]
