# errors.py
"""
Exceptions raised by the tank engine.

All of them are precondition failures detected when particles are created or
a partition changes size. The caller decides whether to clamp its input and
try again; nothing here is fatal to the process.
"""


class SimulationError(ValueError):
    """Base class for every error raised by the engine."""


class InvalidRegion(SimulationError):
    """The sampling band is too narrow for the requested radius range."""


class InvalidConfig(SimulationError):
    """A distribution range is inverted, or a radius bound is not positive."""


class InvalidCount(SimulationError):
    """A negative particle population was requested."""
