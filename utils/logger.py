"""
Logger utility for the Deadlock Detection Simulator.

Provides the SimulatorLogger facade on top of the standard logging package.
"""

import logging
from typing import Optional, Iterable

LOGGER_NAME = "deadlock_sim"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str = "") -> logging.Logger:
    """Return the simulator logger or one of its children."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


class SimulatorLogger:
    """
    Logger for simulation events and decisions.

    Format: "Step X: Process PY requests RZ - ALLOCATED/BLOCKED"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
        """
        self.verbose = verbose
        self.log_file = log_file
        self.logger = get_logger()
        self.logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        self._handlers = []

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        if not self.logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self._add_handler(console_handler)

        if self.log_file:
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            self._add_handler(file_handler)

    def _add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)
        self._handlers.append(handler)

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        self.logger.log(_LEVELS.get(level, logging.INFO), message)

    def log_step(self, step: int, message: str) -> None:
        """Log a simulation step message."""
        self.log(f"Step {step}: {message}")

    def log_deadlock(self, step: int, deadlocked_pids: Iterable[str]) -> None:
        """
        Log deadlock detection.

        Args:
            step: Current detection iteration
            deadlocked_pids: PIDs in deadlock
        """
        pids_str = ", ".join(deadlocked_pids)
        self.log_step(step, f"DEADLOCK DETECTED - Processes in deadlock: [{pids_str}]")

    def log_system_state(self, step: int, state_str: str) -> None:
        """
        Log system state snapshot.

        Args:
            step: Current detection iteration
            state_str: Formatted system state
        """
        if self.verbose:
            self.log(f"Step {step}: System State:\n{state_str}", "debug")

    def close(self) -> None:
        """Detach and close the handlers this instance installed."""
        for handler in self._handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self._handlers = []
