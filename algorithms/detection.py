"""
Deadlock Detection Algorithm for the Deadlock Detection Simulator.

Implements matrix-based deadlock detection (Work/Finish reduction) for
multi-instance resource systems.
"""

import numpy as np
from typing import List, Optional, Set

from models.errors import ValidationError
from models.fsa import ProcessState
from models.simulation import Simulation, DetectionResult, SAFE, UNSAFE
from models.system_state import SystemState
from analysis.events import EventType
from utils.logger import get_logger

logger = get_logger("detection")


def reduce(system_state: SystemState) -> List[str]:
    """
    Run one Work/Finish reduction pass.

    Algorithm (Multi-Instance Resources):
    1. Initialize Work = Available.copy(), Finish = [False] * num_processes
    2. Find the first process i (creation order) where Finish[i] == False
       and Request[i] <= Work (element-wise)
    3. If found: Finish[i] = True, Work += Allocation[i], restart step 2
    4. If no such process: every i with Finish[i] == False is deadlocked

    Processes that are not waiting have an all-zero request row, so they are
    always reduced and their held instances flow back into Work.

    Time Complexity: O(P²×R) where P = processes, R = resources

    Args:
        system_state: Allocation graph snapshot

    Returns:
        PIDs of deadlocked processes, in creation order
    """
    work = system_state.available_vector.copy()
    finish = np.zeros(system_state.num_processes, dtype=bool)
    requests = system_state.request_matrix
    allocation = system_state.allocation_matrix

    found_progress = True
    while found_progress:
        found_progress = False

        for i in range(system_state.num_processes):
            if finish[i]:
                continue

            if np.all(requests[i] <= work):
                work += allocation[i]
                finish[i] = True
                found_progress = True
                # Restart search from beginning for deterministic behavior
                break

    return [
        process.pid
        for i, process in enumerate(system_state.processes)
        if not finish[i]
    ]


def evaluate(simulation: Simulation) -> DetectionResult:
    """
    Compute a verdict for the current state without side effects.

    No FSA transitions are applied and the iteration counter is untouched.
    Caller must hold the simulation lock.
    """
    state = simulation.system_state()
    deadlocked = reduce(state)
    return DetectionResult(
        verdict=UNSAFE if deadlocked else SAFE,
        deadlocked=frozenset(deadlocked),
        iteration=simulation.iteration,
    )


def run_detection(simulation: Simulation, steps: int = 1) -> DetectionResult:
    """
    Run `steps` detection passes and store the final verdict.

    Each pass returns BLOCKED processes to WAITING, reduces the graph, marks
    every deadlocked process BLOCKED and advances the iteration counter.
    Passes with no intervening mutation produce the same verdict, so once two
    consecutive passes agree the remaining ones only advance the counter.

    Args:
        simulation: Simulation to analyse
        steps: Number of passes (>= 1)

    Returns:
        DetectionResult of the final pass

    Raises:
        ValidationError: If steps is not a positive integer
    """
    if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
        raise ValidationError(f"steps must be an integer >= 1 (got {steps!r})")

    with simulation.lock:
        previous = None
        remaining = steps
        while remaining:
            for process in simulation.processes.values():
                if process.state == ProcessState.BLOCKED:
                    process.clear()

            state = simulation.system_state()
            deadlocked = reduce(state)
            for pid in deadlocked:
                simulation.processes[pid].mark_deadlocked()

            simulation.iteration += 1
            remaining -= 1
            state.assert_resource_conservation(
                f"after detection pass {simulation.iteration}")

            if deadlocked == previous:
                # Nothing changed between passes, so the rest would repeat this one
                simulation.iteration += remaining
                remaining = 0
            previous = deadlocked

        result = DetectionResult(
            verdict=UNSAFE if previous else SAFE,
            deadlocked=frozenset(previous),
            iteration=simulation.iteration,
        )
        simulation.last_result = result
        simulation.record(EventType.DETECTION,
                          message=f"{steps} pass(es), system is {result.verdict}")
        if result.verdict == UNSAFE:
            pids = sorted(result.deadlocked)
            simulation.record(EventType.DEADLOCK, message=f"processes: {pids}")
            logger.warning("Step %d: DEADLOCK DETECTED in %s - Processes in deadlock: [%s]",
                           result.iteration, simulation.simulation_id, ", ".join(pids))
        else:
            logger.info("Step %d: %s is SAFE", result.iteration, simulation.simulation_id)
        return result


def find_cycle(system_state: SystemState) -> Optional[List[str]]:
    """
    Find one cycle in the wait-for graph using DFS.

    The search keeps its own stack of (node, neighbor iterator) frames so
    wait chains longer than the interpreter's recursion limit are handled.

    Returns:
        The cycle as a list of PIDs (first PID repeated at the end), or None
    """
    graph = system_state.wait_for_graph()
    visited: Set[str] = set()

    for root in graph:
        if root in visited:
            continue

        visited.add(root)
        path = [root]
        on_path = {root}
        stack = [(root, iter(graph.get(root, [])))]

        while stack:
            node, neighbors = stack[-1]
            for neighbor in neighbors:
                if neighbor in on_path:
                    start = path.index(neighbor)
                    return path[start:] + [neighbor]
                if neighbor not in visited:
                    visited.add(neighbor)
                    on_path.add(neighbor)
                    path.append(neighbor)
                    stack.append((neighbor, iter(graph.get(neighbor, []))))
                    break
            else:
                # Every neighbor explored
                stack.pop()
                on_path.discard(node)
                path.pop()
    return None
