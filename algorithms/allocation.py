"""
Resource Allocation for the Deadlock Detection Simulator.

Handles process requests (grant immediately or queue a wait edge), internal
releases, and retries of pending requests once instances are freed.
"""

from dataclasses import dataclass
from typing import List

from models.errors import ProtocolViolation, InternalError
from models.process import Process
from models.resource import Resource
from models.simulation import Simulation, IMMEDIATE
from analysis.events import EventType
from algorithms.detection import evaluate
from utils.logger import get_logger

logger = get_logger("allocation")

ALLOCATED = "allocated"
BLOCKED = "blocked"


@dataclass(frozen=True)
class RequestOutcome:
    """Result of a single request: allocation result and current verdict."""
    allocation_result: str
    system_state: str


def _assert_consistent(process: Process, resource: Resource, context: str) -> None:
    """
    Check the records touched by one operation.

    The resource must conserve its instances and its allocation table must
    agree with the process's held map for that resource.

    Raises:
        InternalError: If either check fails
    """
    resource.assert_conservation(context)
    recorded = resource.allocated.get(process.pid, 0)
    if recorded != process.held.get(resource.rid, 0):
        raise InternalError(
            f"Allocation mismatch for {process.pid} on {resource.rid} {context}: "
            f"held={process.held.get(resource.rid, 0)}, resource table={recorded}"
        )


def _refresh_verdict(simulation: Simulation) -> None:
    """Recompute the cached verdict when the strategy asks for it."""
    if simulation.detection_strategy == IMMEDIATE:
        simulation.last_result = evaluate(simulation)


def request(simulation: Simulation, pid, rid) -> RequestOutcome:
    """
    Process `pid` requests one instance of resource `rid`.

    Steps:
    1. Resolve process and resource (ValidationError, NotFoundError)
    2. Validate the REQUEST event against the FSA (ProtocolViolation)
    3. Try to acquire one instance
    4. Granted -> HOLDING; insufficient -> WAITING with a pending request
    5. Immediate strategy recomputes the verdict

    Args:
        simulation: Target simulation
        pid: Requesting process id
        rid: Requested resource id

    Returns:
        RequestOutcome with 'allocated' or 'blocked' and the SAFE/UNSAFE verdict
    """
    with simulation.lock:
        process = simulation.get_process(pid)
        resource = simulation.get_resource(rid)
        pid, rid = process.pid, resource.rid

        try:
            process.check_request(rid)
        except ProtocolViolation:
            simulation.record(EventType.REJECTED, process_id=pid, resource_id=rid,
                              message=f"{pid} cannot request {rid} while {process.state.value}")
            raise

        granted = resource.try_acquire(pid, 1)
        process.apply_request(rid, granted)
        result = ALLOCATED if granted else BLOCKED

        _assert_consistent(process, resource, f"after {pid} requested {rid}")
        simulation.record(EventType.ALLOCATION if granted else EventType.BLOCKED,
                          process_id=pid, resource_id=rid)
        logger.info("Step %d: Process %s requests %s - %s",
                    simulation.iteration, pid, rid, result.upper())

        _refresh_verdict(simulation)
        return RequestOutcome(allocation_result=result, system_state=simulation.verdict)


def release(simulation: Simulation, pid, rid) -> List[str]:
    """
    Process `pid` releases every instance of `rid` it holds.

    Not exposed through the web interface. After the release, pending
    requests are retried so waiting processes can pick up freed instances.

    Returns:
        PIDs whose pending requests were granted by the retry
    """
    with simulation.lock:
        process = simulation.get_process(pid)
        resource = simulation.get_resource(rid)
        pid, rid = process.pid, resource.rid

        process.check_release(rid)
        freed = resource.release(pid)
        process.apply_release(rid)

        simulation.record(EventType.RELEASE, process_id=pid, resource_id=rid,
                          message=f"{freed} instance(s)")
        logger.info("Step %d: Process %s releases %s[%d]",
                    simulation.iteration, pid, rid, freed)

        _assert_consistent(process, resource, f"after {pid} released {rid}")
        granted = retry_pending_requests(simulation)
        _refresh_verdict(simulation)
        return granted


def retry_pending_requests(simulation: Simulation) -> List[str]:
    """
    Retry every pending request in process creation order.

    WAITING and BLOCKED processes whose requested resource now has a free
    instance are granted and move to HOLDING.

    Returns:
        PIDs granted by this retry, in creation order
    """
    granted = []
    with simulation.lock:
        for process in simulation.processes.values():
            if not process.is_waiting:
                continue
            rid = process.pending_request
            resource = simulation.resources[rid]
            if resource.try_acquire(process.pid, 1):
                process.apply_grant()
                _assert_consistent(process, resource, f"after granting {rid} to {process.pid}")
                granted.append(process.pid)
                simulation.record(EventType.GRANT, process_id=process.pid, resource_id=rid)
                logger.info("Step %d: Process %s retries pending %s - ALLOCATED",
                            simulation.iteration, process.pid, rid)
    return granted
