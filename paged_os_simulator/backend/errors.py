"""
Exception hierarchy for the paged OS simulator.
"""


class SimulatorError(Exception):
    """Base class for every error raised by the simulator."""


class ConfigurationError(SimulatorError, ValueError):
    """Raised when simulation options are missing or malformed."""


class InputFormatError(SimulatorError, ValueError):
    """Raised when a process list cannot be parsed."""

    def __init__(self, message: str, line_no: int = None):
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)
        self.line_no = line_no


class MemoryExhaustedError(SimulatorError, RuntimeError):
    """Raised when pages must be freed but no other process holds any."""
