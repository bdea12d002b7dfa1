"""
Simulation model for the Deadlock Detection Simulator.

One simulation session: its processes, resources, detection strategy,
iteration counter and last detection verdict.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet

from models.errors import ValidationError, ConflictError, NotFoundError
from models.process import Process
from models.resource import Resource
from models.system_state import SystemState
from analysis.events import EventLog, SimulationEvent, EventType

SAFE = "SAFE"
UNSAFE = "UNSAFE"

PERIODIC = "periodic"
IMMEDIATE = "immediate"
DETECTION_STRATEGIES = (PERIODIC, IMMEDIATE)


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one detection pass.

    Attributes:
        verdict: SAFE or UNSAFE
        deadlocked: Processes the reduction could not finish
        iteration: Iteration number the result was computed at
    """
    verdict: str = SAFE
    deadlocked: FrozenSet[str] = frozenset()
    iteration: int = 0

    def to_dict(self) -> Dict:
        return {
            'verdict': self.verdict,
            'deadlocked': sorted(self.deadlocked),
            'iteration': self.iteration,
        }


def _validate_identifier(kind: str, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{kind} identifier must be a non-empty string (got {value!r})")
    return value.strip()


@dataclass
class Simulation:
    """
    A single simulation session.

    Every mutating operation must hold `lock`; the simulation is the unit of
    mutual exclusion.
    """
    detection_strategy: str = PERIODIC
    simulation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    processes: Dict[str, Process] = field(default_factory=dict)
    resources: Dict[str, Resource] = field(default_factory=dict)
    iteration: int = 0
    last_result: DetectionResult = field(default_factory=DetectionResult)
    event_log: EventLog = field(default_factory=EventLog)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def __post_init__(self):
        if self.detection_strategy not in DETECTION_STRATEGIES:
            raise ValidationError(
                f"detection_strategy must be one of {', '.join(DETECTION_STRATEGIES)} "
                f"(got {self.detection_strategy!r})"
            )

    @property
    def verdict(self) -> str:
        return self.last_result.verdict

    def record(self, event_type: EventType, process_id: str = None,
               resource_id: str = None, message: str = "") -> None:
        self.event_log.add(SimulationEvent(
            iteration=self.iteration,
            event_type=event_type,
            process_id=process_id,
            resource_id=resource_id,
            message=message,
        ))

    def add_process(self, pid, priority=0) -> Process:
        """
        Add a process in the IDLE state.

        Raises:
            ValidationError: Bad identifier or non-integer priority
            ConflictError: pid already exists
        """
        pid = _validate_identifier("Process", pid)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError(f"Process {pid}: priority must be an integer (got {priority!r})")
        with self.lock:
            if pid in self.processes:
                raise ConflictError(f"Process {pid} already exists")
            process = Process(pid=pid, priority=priority)
            self.processes[pid] = process
            self.record(EventType.PROCESS_ADDED, process_id=pid,
                        message=f"{pid} added (priority {priority})")
            return process

    def add_resource(self, rid, instances) -> Resource:
        """
        Add a resource with all instances available.

        Raises:
            ValidationError: Bad identifier or non-positive instance count
            ConflictError: rid already exists
        """
        rid = _validate_identifier("Resource", rid)
        resource = Resource.create(rid, instances)
        with self.lock:
            if rid in self.resources:
                raise ConflictError(f"Resource {rid} already exists")
            self.resources[rid] = resource
            self.record(EventType.RESOURCE_ADDED, resource_id=rid,
                        message=f"{rid} added ({instances} instances)")
            return resource

    def get_process(self, pid) -> Process:
        pid = _validate_identifier("Process", pid)
        try:
            return self.processes[pid]
        except KeyError:
            raise NotFoundError(f"Process {pid} not found")

    def get_resource(self, rid) -> Resource:
        rid = _validate_identifier("Resource", rid)
        try:
            return self.resources[rid]
        except KeyError:
            raise NotFoundError(f"Resource {rid} not found")

    def system_state(self) -> SystemState:
        """Build the derived allocation graph view for the current records."""
        return SystemState(
            processes=list(self.processes.values()),
            resources=list(self.resources.values()),
        )

    def snapshot(self, events: int = 20) -> Dict:
        """JSON-ready view of the whole simulation."""
        # Local import: the detection algorithm module depends on this one.
        from algorithms.detection import find_cycle

        with self.lock:
            state = self.system_state()
            return {
                'simulation_id': self.simulation_id,
                'detection_strategy': self.detection_strategy,
                'state': self.verdict,
                'system_state': self.verdict,
                'iteration': self.iteration,
                'deadlocked': sorted(self.last_result.deadlocked),
                'last_result': self.last_result.to_dict(),
                'cycle': find_cycle(state),
                'processes': [p.to_dict() for p in self.processes.values()],
                'resources': [r.to_dict() for r in self.resources.values()],
                'allocation_edges': [list(e) for e in state.allocation_edges()],
                'wait_edges': [list(e) for e in state.wait_edges()],
                'events': [e.to_dict() for e in self.event_log.recent(events)],
                'created_at': self.created_at,
            }
