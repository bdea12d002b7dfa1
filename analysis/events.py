"""
Event Model for the Deadlock Detection Simulator.

Defines the activity log kept per simulation and shown by the dashboard.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Deque


class EventType(Enum):
    """Types of events in the simulation."""
    PROCESS_ADDED = "process_added"
    RESOURCE_ADDED = "resource_added"
    ALLOCATION = "allocation"
    BLOCKED = "blocked"
    RELEASE = "release"
    GRANT = "grant"
    DETECTION = "detection"
    DEADLOCK = "deadlock"
    REJECTED = "rejected"


@dataclass
class SimulationEvent:
    """
    Represents a single event in the simulation.

    Attributes:
        iteration: Detection iteration the event happened in
        event_type: Type of event
        process_id: Process involved (if applicable)
        resource_id: Resource involved (if applicable)
        message: Human-readable description
    """
    iteration: int
    event_type: EventType
    process_id: Optional[str] = None
    resource_id: Optional[str] = None
    message: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now().strftime("%H:%M:%S"))

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"Iteration {self.iteration}:"

        if self.event_type == EventType.ALLOCATION:
            return f"{base} {self.process_id} requests {self.resource_id} - ALLOCATED"
        elif self.event_type == EventType.BLOCKED:
            return f"{base} {self.process_id} requests {self.resource_id} - BLOCKED"
        elif self.event_type == EventType.RELEASE:
            return f"{base} {self.process_id} releases {self.resource_id}"
        elif self.event_type == EventType.GRANT:
            return f"{base} {self.process_id} granted pending {self.resource_id}"
        elif self.event_type == EventType.DEADLOCK:
            return f"{base} DEADLOCK DETECTED ({self.message})"
        else:
            return f"{base} {self.event_type.value}: {self.message}"

    def to_dict(self) -> Dict:
        return {
            'time': self.timestamp,
            'iteration': self.iteration,
            'type': self.event_type.value,
            'process': self.process_id,
            'resource': self.resource_id,
            'message': str(self),
        }


@dataclass
class EventLog:
    """Bounded collection of simulation events; the oldest drop off first."""
    limit: int = 100
    events: Deque[SimulationEvent] = field(init=False)

    def __post_init__(self):
        self.events = deque(maxlen=self.limit)

    def add(self, event: SimulationEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def recent(self, count: int = 20) -> List[SimulationEvent]:
        return list(self.events)[-count:]
