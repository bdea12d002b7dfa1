"""
Process model for the Deadlock Detection Simulator.

Represents a process in a simulation session. All state changes go through
the FSA in models.fsa.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from models.fsa import (
    ProcessState, FSAEvent, transition, no_transition,
    GRANTED, INSUFFICIENT, STILL_HOLDING, EMPTY,
)


@dataclass
class Process:
    """
    Represents a process in the simulation.

    Attributes:
        pid: Process identifier (unique within a simulation)
        priority: Priority level (informational, does not affect allocation order)
        state: Current FSA state
        held: Instances held per resource id
        pending_request: Resource id the process waits on (WAITING/BLOCKED only)
    """
    pid: str
    priority: int = 0
    state: ProcessState = ProcessState.IDLE
    held: Dict[str, int] = field(default_factory=dict)
    pending_request: Optional[str] = None

    @property
    def is_waiting(self) -> bool:
        """True while the process has an unmet request (WAITING or BLOCKED)."""
        return self.state in (ProcessState.WAITING, ProcessState.BLOCKED)

    def check_request(self, rid: str) -> None:
        """
        Validate a REQUEST event without changing state.

        Raises:
            ProtocolViolation: If the FSA rejects the request
        """
        if self.state not in (ProcessState.IDLE, ProcessState.HOLDING):
            raise no_transition(self.state, FSAEvent.REQUEST, f"process {self.pid}")
        if rid in self.held:
            raise no_transition(
                self.state, FSAEvent.REQUEST,
                f"process {self.pid} already holds {rid}"
            )

    def apply_request(self, rid: str, granted: bool) -> None:
        """Record the result of a REQUEST event (grant or wait)."""
        self.check_request(rid)
        outcome = GRANTED if granted else INSUFFICIENT
        self.state = transition(self.state, FSAEvent.REQUEST, outcome)
        if granted:
            self.held[rid] = self.held.get(rid, 0) + 1
        else:
            self.pending_request = rid

    def apply_grant(self) -> str:
        """
        Satisfy the pending request (WAITING/BLOCKED -> HOLDING).

        Returns:
            The resource id that was granted
        """
        self.state = transition(self.state, FSAEvent.GRANT)
        rid = self.pending_request
        self.held[rid] = self.held.get(rid, 0) + 1
        self.pending_request = None
        return rid

    def check_release(self, rid: str) -> None:
        """
        Validate a RELEASE event without changing state.

        Raises:
            ProtocolViolation: If the process is not HOLDING rid
        """
        if self.state != ProcessState.HOLDING:
            raise no_transition(self.state, FSAEvent.RELEASE, f"process {self.pid}")
        if rid not in self.held:
            raise no_transition(
                self.state, FSAEvent.RELEASE,
                f"process {self.pid} does not hold {rid}"
            )

    def apply_release(self, rid: str) -> int:
        """
        Drop every instance of rid held by this process.

        Returns:
            Number of instances released
        """
        self.check_release(rid)
        released = self.held.pop(rid)
        outcome = STILL_HOLDING if self.held else EMPTY
        self.state = transition(self.state, FSAEvent.RELEASE, outcome)
        return released

    def mark_deadlocked(self) -> None:
        """WAITING -> BLOCKED."""
        self.state = transition(self.state, FSAEvent.MARK_DEADLOCKED)

    def clear(self) -> None:
        """BLOCKED -> WAITING, so the process is re-examined by detection."""
        self.state = transition(self.state, FSAEvent.CLEAR)

    def to_dict(self) -> Dict:
        return {
            'pid': self.pid,
            'priority': self.priority,
            'state': self.state.value,
            'held': dict(self.held),
            'pending_request': self.pending_request,
        }

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Process(pid={self.pid}, priority={self.priority}, "
            f"state={self.state.value}, held={self.held}, "
            f"pending={self.pending_request})"
        )
