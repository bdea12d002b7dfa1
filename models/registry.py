"""
Simulation registry for the Deadlock Detection Simulator.

Creates and looks up simulations by identifier. The registry is the only
structure shared between sessions and is used for create/lookup only.
"""

import threading
from typing import Dict, Optional

from models.errors import NotFoundError
from models.simulation import Simulation, PERIODIC
from analysis.events import EventLog
from utils.logger import get_logger

logger = get_logger("registry")


class SimulationRegistry:
    """Process-wide mapping of simulation id -> Simulation."""

    def __init__(self, event_log_limit: int = 100):
        self._simulations: Dict[str, Simulation] = {}
        self._lock = threading.Lock()
        self.event_log_limit = event_log_limit

    def create(self, detection_strategy: Optional[str] = PERIODIC) -> Simulation:
        """
        Create a new simulation with a fresh identifier.

        Raises:
            ValidationError: Unknown detection strategy
        """
        simulation = Simulation(
            detection_strategy=detection_strategy,
            event_log=EventLog(limit=self.event_log_limit),
        )
        with self._lock:
            self._simulations[simulation.simulation_id] = simulation
        logger.info("Simulation %s created (strategy=%s)",
                    simulation.simulation_id, detection_strategy)
        return simulation

    def get(self, simulation_id) -> Simulation:
        """
        Resolve a simulation.

        Raises:
            NotFoundError: Unknown identifier
        """
        with self._lock:
            simulation = self._simulations.get(simulation_id)
        if simulation is None:
            raise NotFoundError(f"Simulation {simulation_id} not found")
        return simulation

    def remove(self, simulation_id) -> None:
        with self._lock:
            if self._simulations.pop(simulation_id, None) is None:
                raise NotFoundError(f"Simulation {simulation_id} not found")
        logger.info("Simulation %s removed", simulation_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._simulations)

    def __contains__(self, simulation_id) -> bool:
        with self._lock:
            return simulation_id in self._simulations
