from __future__ import annotations


class SimulationError(Exception):
    """Base class for every condition raised by the simulator."""


class AccessDenied(SimulationError):
    """A victim buffer access targeted the secret region or fell outside the buffer."""

    def __init__(self, offset: int):
        super().__init__(f"Access to victim buffer offset {offset} denied.")
        self.offset = offset


class InvalidConfiguration(SimulationError, ValueError):
    """The trial cannot start with the requested parameters."""


class SecretGenerationFailure(SimulationError):
    """The secret source did not yield enough unique, non-zero bytes."""


class CapacityInvariantViolation(SimulationError):
    """The cache set left a superblock over budget or a line in two ways."""
