"""
System State model for the Deadlock Detection Simulator.

A derived, read-only view over a simulation's processes and resources: the
matrices used by the detection algorithm and the allocation / wait edges of
the resource-allocation graph. Nothing here is a source of truth; the view is
rebuilt from the process and resource records whenever it is needed.
"""

import numpy as np
from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, field

from models.process import Process
from models.resource import Resource
from models.errors import InternalError


@dataclass
class SystemState:
    """
    Allocation graph snapshot for one simulation.

    Attributes:
        processes: Processes in creation order (row order of every matrix)
        resources: Resources in creation order (column order of every matrix)
        allocation_matrix: [P][R] Instances held by each process
        available_vector: [R] Free instances per resource
        request_matrix: [P][R] Outstanding request (one-hot row for waiting processes)
    """
    processes: List[Process] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)

    # Built lazily from the records above
    _allocation_matrix: Optional[np.ndarray] = None
    _available_vector: Optional[np.ndarray] = None
    _request_matrix: Optional[np.ndarray] = None

    @property
    def num_processes(self) -> int:
        """Number of processes in the system."""
        return len(self.processes)

    @property
    def num_resources(self) -> int:
        """Number of resources in the system."""
        return len(self.resources)

    @property
    def resource_index(self) -> Dict[str, int]:
        return {r.rid: j for j, r in enumerate(self.resources)}

    @property
    def allocation_matrix(self) -> np.ndarray:
        """Get allocation matrix [P][R]."""
        if self._allocation_matrix is None:
            self._build_allocation_matrix()
        return self._allocation_matrix

    @property
    def available_vector(self) -> np.ndarray:
        """Get available instances vector [R]."""
        if self._available_vector is None:
            self._build_available_vector()
        return self._available_vector

    @property
    def request_matrix(self) -> np.ndarray:
        """Get pending request matrix [P][R]."""
        if self._request_matrix is None:
            self._build_request_matrix()
        return self._request_matrix

    def _build_allocation_matrix(self) -> None:
        """Build allocation matrix from the resources' allocation tables."""
        self._allocation_matrix = np.zeros((self.num_processes, self.num_resources), dtype=int)
        for i, process in enumerate(self.processes):
            for j, resource in enumerate(self.resources):
                self._allocation_matrix[i][j] = resource.allocated.get(process.pid, 0)

    def _build_available_vector(self) -> None:
        """Build available instances vector."""
        self._available_vector = np.array(
            [r.available_instances for r in self.resources], dtype=int
        )

    def _build_request_matrix(self) -> None:
        """Build pending request matrix from process states."""
        self._request_matrix = np.zeros((self.num_processes, self.num_resources), dtype=int)
        index = self.resource_index
        for i, process in enumerate(self.processes):
            if process.is_waiting and process.pending_request is not None:
                self._request_matrix[i][index[process.pending_request]] = 1

    def allocation_edges(self) -> List[Tuple[str, str]]:
        """Allocation edges resource -> process for every positive allocation."""
        edges = []
        for resource in self.resources:
            for process in self.processes:
                if resource.allocated.get(process.pid, 0) > 0:
                    edges.append((resource.rid, process.pid))
        return edges

    def wait_edges(self) -> List[Tuple[str, str]]:
        """Wait edges process -> resource for every unmet pending request."""
        return [
            (p.pid, p.pending_request)
            for p in self.processes
            if p.is_waiting and p.pending_request is not None
        ]

    def wait_for_graph(self) -> Dict[str, List[str]]:
        """
        Collapse the bipartite graph to process -> processes it waits for.

        A waiting process waits for every holder of the resource it requested.
        """
        holders = {r.rid: [p.pid for p in self.processes if r.allocated.get(p.pid, 0) > 0]
                   for r in self.resources}
        graph = {p.pid: [] for p in self.processes}
        for pid, rid in self.wait_edges():
            graph[pid] = [h for h in holders.get(rid, []) if h != pid]
        return graph

    def display(self) -> str:
        """
        Generate readable string representation of system state.

        Returns:
            Formatted string showing the vectors and matrices
        """
        header = "     " + " ".join(f"{r.rid:>4}" for r in self.resources)
        output = []
        output.append("\n" + "="*60)
        output.append("SYSTEM STATE")
        output.append("="*60)

        output.append("\nProcess States:")
        for process in self.processes:
            pending = f", waiting on {process.pending_request}" if process.is_waiting else ""
            output.append(
                f"  {process.pid}: {process.state.value:8} "
                f"(priority={process.priority}{pending})"
            )

        output.append("\nAvailable Resources:")
        output.append("  [" + ", ".join(
            f"{r.rid}:{self.available_vector[j]}" for j, r in enumerate(self.resources)
        ) + "]")

        output.append("\nAllocation Matrix:")
        output.append(header)
        for i, process in enumerate(self.processes):
            output.append(f"  {process.pid}: " + " ".join(
                f"{v:4}" for v in self.allocation_matrix[i]))

        output.append("\nRequest Matrix (Pending):")
        output.append(header)
        for i, process in enumerate(self.processes):
            output.append(f"  {process.pid}: " + " ".join(
                f"{v:4}" for v in self.request_matrix[i]))

        output.append("\n" + "="*60)
        return "\n".join(output)

    def assert_resource_conservation(self, context: str = "") -> None:
        """
        Verify available + allocated == total for every resource and that each
        process's held map matches the resources' allocation tables.

        Raises:
            InternalError: If either invariant is violated
        """
        for resource in self.resources:
            resource.assert_conservation(context)

        for process in self.processes:
            recorded = {r.rid: r.allocated[process.pid]
                        for r in self.resources if process.pid in r.allocated}
            if recorded != process.held:
                raise InternalError(
                    f"Allocation mismatch for {process.pid} {context}: "
                    f"held={process.held}, resource tables={recorded}"
                )
