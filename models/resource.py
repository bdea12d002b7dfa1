"""
Resource model for the Deadlock Detection Simulator.

Represents a reusable resource with multiple instances and the per-process
accounting table (the resource pool operations).
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from models.errors import ValidationError, ProtocolViolation, InternalError


@dataclass
class Resource:
    """
    Represents a resource in the simulation.

    Attributes:
        rid: Resource identifier (unique within a simulation)
        total_instances: Total number of instances, fixed at creation
        available_instances: Current number of unallocated instances
        allocated: Instances currently allocated, keyed by process id

    Invariant:
        available_instances + sum(allocated.values()) == total_instances
    """
    rid: str
    total_instances: int
    available_instances: Optional[int] = None
    allocated: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        """Validate resource state."""
        if self.available_instances is None:
            self.available_instances = self.total_instances
        self.assert_conservation("at creation")

    @classmethod
    def create(cls, rid: str, total: int) -> "Resource":
        """
        Create a resource with all instances available.

        Raises:
            ValidationError: If total is not a positive integer
        """
        if isinstance(total, bool) or not isinstance(total, int) or total <= 0:
            raise ValidationError(
                f"Resource {rid}: instances must be a positive integer (got {total!r})"
            )
        return cls(rid=rid, total_instances=total)

    @property
    def allocated_instances(self) -> int:
        return sum(self.allocated.values())

    def try_acquire(self, pid: str, count: int = 1) -> bool:
        """
        Allocate instances to a process if enough are available.

        Args:
            pid: Requesting process id
            count: Number of instances

        Returns:
            True if granted, False if insufficient (nothing is changed)
        """
        if count <= 0:
            raise ValidationError(f"Resource {self.rid}: acquire count must be positive")
        if count > self.available_instances:
            return False
        self.available_instances -= count
        self.allocated[pid] = self.allocated.get(pid, 0) + count
        self.assert_conservation(f"after acquire by {pid}")
        return True

    def release(self, pid: str) -> int:
        """
        Release every instance held by a process.

        Returns:
            Number of instances freed

        Raises:
            ProtocolViolation: If the process holds none of this resource
        """
        if self.allocated.get(pid, 0) <= 0:
            raise ProtocolViolation(
                f"No transition for event RELEASE: process {pid} holds none of {self.rid}"
            )
        freed = self.allocated.pop(pid)
        self.available_instances += freed
        self.assert_conservation(f"after release by {pid}")
        return freed

    def assert_conservation(self, context: str = "") -> None:
        """
        Verify available + allocated == total and 0 <= available <= total.

        Raises:
            InternalError: If the accounting is inconsistent
        """
        allocated = self.allocated_instances
        if (self.available_instances < 0
                or self.available_instances > self.total_instances
                or self.available_instances + allocated != self.total_instances):
            raise InternalError(
                f"Resource conservation violated for {self.rid} {context}: "
                f"available={self.available_instances} + allocated={allocated} "
                f"!= total={self.total_instances}"
            )

    def to_dict(self) -> Dict:
        return {
            'rid': self.rid,
            'total_instances': self.total_instances,
            'available_instances': self.available_instances,
            'allocated': dict(self.allocated),
        }
