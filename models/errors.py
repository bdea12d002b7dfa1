"""
Error taxonomy for the Deadlock Detection Simulator.

Every engine failure is a SimulationError subclass carrying the HTTP status
the web interface maps it to.
"""


class SimulationError(Exception):
    """Base class for all engine errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SimulationError):
    """Missing or malformed input, rejected before any mutation."""
    status_code = 400


class ConflictError(SimulationError):
    """Duplicate process or resource identifier."""
    status_code = 409


class NotFoundError(SimulationError):
    """Unknown simulation, process or resource identifier."""
    status_code = 404


class ProtocolViolation(SimulationError):
    """The process FSA has no transition for the requested event."""
    status_code = 409


class InternalError(SimulationError):
    """Invariant check failure (accounting mismatch etc)."""
    status_code = 500
