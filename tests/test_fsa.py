"""
Process FSA Tests

Checks the transition table and the Process record driven by it.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.errors import ProtocolViolation
from models.fsa import (
    ProcessState, FSAEvent, TRANSITIONS, transition, can_transition,
    GRANTED, INSUFFICIENT, STILL_HOLDING, EMPTY,
)
from models.process import Process


LEGAL = {
    (ProcessState.IDLE, FSAEvent.REQUEST),
    (ProcessState.HOLDING, FSAEvent.REQUEST),
    (ProcessState.WAITING, FSAEvent.GRANT),
    (ProcessState.WAITING, FSAEvent.MARK_DEADLOCKED),
    (ProcessState.BLOCKED, FSAEvent.GRANT),
    (ProcessState.HOLDING, FSAEvent.RELEASE),
    (ProcessState.BLOCKED, FSAEvent.CLEAR),
}


def test_table_covers_exactly_the_legal_pairs():
    """Every (state, event) pair is either in the table or rejected."""
    assert set(TRANSITIONS) == LEGAL

    for state in ProcessState:
        for event in FSAEvent:
            if (state, event) in LEGAL:
                assert can_transition(state, event)
                continue
            assert not can_transition(state, event)
            with pytest.raises(ProtocolViolation) as exc_info:
                transition(state, event)
            assert "No transition" in str(exc_info.value)


def test_request_targets_depend_on_grant():
    for state in (ProcessState.IDLE, ProcessState.HOLDING):
        assert transition(state, FSAEvent.REQUEST, GRANTED) == ProcessState.HOLDING
        assert transition(state, FSAEvent.REQUEST, INSUFFICIENT) == ProcessState.WAITING


def test_release_target_depends_on_remaining_holdings():
    assert transition(ProcessState.HOLDING, FSAEvent.RELEASE, STILL_HOLDING) == ProcessState.HOLDING
    assert transition(ProcessState.HOLDING, FSAEvent.RELEASE, EMPTY) == ProcessState.IDLE


def test_single_target_events():
    assert transition(ProcessState.WAITING, FSAEvent.GRANT) == ProcessState.HOLDING
    assert transition(ProcessState.BLOCKED, FSAEvent.GRANT) == ProcessState.HOLDING
    assert transition(ProcessState.WAITING, FSAEvent.MARK_DEADLOCKED) == ProcessState.BLOCKED
    assert transition(ProcessState.BLOCKED, FSAEvent.CLEAR) == ProcessState.WAITING


def test_process_request_grant_release_cycle():
    """A process moves IDLE -> WAITING -> HOLDING -> IDLE."""
    process = Process(pid="P1", priority=1)
    assert process.state == ProcessState.IDLE

    process.apply_request("R1", granted=False)
    assert process.state == ProcessState.WAITING
    assert process.pending_request == "R1"
    assert process.held == {}

    assert process.apply_grant() == "R1"
    assert process.state == ProcessState.HOLDING
    assert process.held == {"R1": 1}
    assert process.pending_request is None

    process.apply_request("R2", granted=True)
    assert process.held == {"R1": 1, "R2": 1}

    assert process.apply_release("R1") == 1
    assert process.state == ProcessState.HOLDING, "Still holds R2"
    process.apply_release("R2")
    assert process.state == ProcessState.IDLE


def test_waiting_process_cannot_request():
    process = Process(pid="P1")
    process.apply_request("R1", granted=False)

    with pytest.raises(ProtocolViolation, match="No transition"):
        process.check_request("R2")
    assert process.pending_request == "R1", "Rejected request must not change state"


def test_holding_process_cannot_request_held_resource():
    process = Process(pid="P1")
    process.apply_request("R1", granted=True)

    with pytest.raises(ProtocolViolation, match="No transition"):
        process.check_request("R1")
    process.check_request("R2")


def test_release_requires_holding_the_resource():
    process = Process(pid="P1")
    with pytest.raises(ProtocolViolation, match="No transition"):
        process.check_release("R1")

    process.apply_request("R1", granted=True)
    with pytest.raises(ProtocolViolation, match="No transition"):
        process.check_release("R2")


def test_deadlock_marking_round_trip():
    process = Process(pid="P1")
    process.apply_request("R1", granted=False)
    process.mark_deadlocked()
    assert process.state == ProcessState.BLOCKED
    assert process.is_waiting

    process.clear()
    assert process.state == ProcessState.WAITING

    process.mark_deadlocked()
    process.apply_grant()
    assert process.state == ProcessState.HOLDING
    assert process.held == {"R1": 1}


def test_idle_process_cannot_be_marked_deadlocked():
    process = Process(pid="P1")
    with pytest.raises(ProtocolViolation, match="No transition"):
        process.mark_deadlocked()
    assert process.state == ProcessState.IDLE
