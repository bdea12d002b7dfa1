"""
Scenario Loader for the Deadlock Detection Simulator.

Loads and validates JSON scenario files and replays their events against a
simulation.
"""

import json
from typing import Dict, List, Any, Tuple

from models.errors import SimulationError, InternalError
from models.registry import SimulationRegistry
from models.simulation import Simulation, DETECTION_STRATEGIES, PERIODIC
from algorithms.allocation import request, release
from algorithms.detection import run_detection
from utils.logger import get_logger

logger = get_logger("scenario")

EVENT_TYPES = ('request', 'release', 'detect')


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


def read_scenario(file_path: str) -> Dict[str, Any]:
    """
    Read and validate a scenario file.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        The validated scenario dictionary

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")
    for required in ('processes', 'resources'):
        if required not in data:
            raise ScenarioLoadError(f"Scenario missing '{required}' field")

    strategy = data.get('detection_strategy', PERIODIC)
    if strategy not in DETECTION_STRATEGIES:
        raise ScenarioLoadError(f"Unknown detection_strategy '{strategy}'")

    pids = _validate_entries(data['processes'], 'process', 'pid')
    rids = _validate_entries(data['resources'], 'resource', 'rid')
    for res in data['resources']:
        if 'instances' not in res:
            raise ScenarioLoadError(f"Resource {res['rid']} missing 'instances'")

    if not isinstance(data.get('events', []), list):
        raise ScenarioLoadError("'events' must be a list")
    for position, event in enumerate(data.get('events', [])):
        _validate_event(position, event, pids, rids)

    return data


def _validate_entries(entries: Any, kind: str, key: str) -> List[str]:
    """Check a list of process/resource entries has unique identifiers."""
    if not isinstance(entries, list):
        raise ScenarioLoadError(f"{kind.capitalize()} entries must be a list")
    ids = []
    for entry in entries:
        if not isinstance(entry, dict) or key not in entry:
            raise ScenarioLoadError(f"{kind.capitalize()} entry missing '{key}' field: {entry!r}")
        if entry[key] in ids:
            raise ScenarioLoadError(f"Duplicate {kind} '{entry[key]}'")
        ids.append(entry[key])
    return ids


def _validate_event(position: int, event: Dict, pids: List[str], rids: List[str]) -> None:
    """
    Validate one scenario event.

    Raises:
        ScenarioLoadError: If event is invalid
    """
    if not isinstance(event, dict) or 'type' not in event:
        raise ScenarioLoadError(f"Event {position}: missing 'type' field")

    event_type = event['type']
    if event_type not in EVENT_TYPES:
        raise ScenarioLoadError(f"Event {position}: unknown event type '{event_type}'")

    if event_type in ('request', 'release'):
        for field, known in (('process', pids), ('resource', rids)):
            if field not in event:
                raise ScenarioLoadError(f"Event {position}: {event_type} missing '{field}'")
            if event[field] not in known:
                raise ScenarioLoadError(
                    f"Event {position}: unknown {field} '{event[field]}'"
                )
    else:
        steps = event.get('steps', 1)
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
            raise ScenarioLoadError(f"Event {position}: steps must be an integer >= 1")


def load_scenario(file_path: str, registry: SimulationRegistry,
                  strategy: str = None) -> Tuple[Simulation, List[Dict]]:
    """
    Create a simulation from a scenario file.

    Args:
        file_path: Path to scenario JSON file
        registry: Registry that owns the new simulation
        strategy: Overrides the scenario's detection_strategy when given

    Returns:
        Tuple of (Simulation, events) with processes and resources added and
        events not yet applied
    """
    data = read_scenario(file_path)
    simulation = registry.create(strategy or data.get('detection_strategy', PERIODIC))
    try:
        for proc in data['processes']:
            simulation.add_process(proc['pid'], proc.get('priority', 0))
        for res in data['resources']:
            simulation.add_resource(res['rid'], res['instances'])
    except SimulationError as e:
        registry.remove(simulation.simulation_id)
        raise ScenarioLoadError(str(e))
    return simulation, list(data.get('events', []))


def replay_events(simulation: Simulation, events: List[Dict]) -> List[Tuple[Dict, str]]:
    """
    Apply scenario events in order.

    Rejected events (e.g. a protocol violation) are recorded as the event's
    outcome and replay continues with the next event.

    Returns:
        List of (event, outcome) pairs
    """
    outcomes = []
    for event in events:
        try:
            if event['type'] == 'request':
                outcome = request(simulation, event['process'], event['resource'])
                result = f"{outcome.allocation_result} ({outcome.system_state})"
            elif event['type'] == 'release':
                granted = release(simulation, event['process'], event['resource'])
                result = f"released (granted: {', '.join(granted) or 'none'})"
            else:
                detection = run_detection(simulation, event.get('steps', 1))
                result = f"{detection.verdict} {sorted(detection.deadlocked)}"
        except InternalError:
            raise
        except SimulationError as e:
            logger.warning("Event %s rejected: %s", event, e.message)
            result = f"error: {e.message}"
        outcomes.append((event, result))
    return outcomes


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Returns:
        Description string, or empty string if not present
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    return data.get('description', '') if isinstance(data, dict) else ''
