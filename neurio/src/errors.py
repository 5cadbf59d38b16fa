"""
Exception taxonomy for the Neurio bridge.

Only ConfigError and StoreUnavailableError stop the process; every other
error is raised inside one poll cycle, logged by the loop, and the next
cycle proceeds as normal.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations


class NeurioError(Exception):
    """Base class for all bridge errors."""


class ConfigError(NeurioError):
    """Invalid or missing configuration; raised before the loop starts."""


class StoreUnavailableError(NeurioError):
    """The variable store could not be opened at startup."""


class TransportError(NeurioError):
    """The HTTP exchange with the sensor failed."""


class ReceiveBufferError(TransportError):
    """The receive buffer could not grow to hold an incoming chunk."""


class MalformedPayload(NeurioError):
    """The sensor response is missing expected structure or fields."""


class HandleResolutionError(NeurioError):
    """A destination variable name is not declared in the store."""

    def __init__(self, name: str, reason: str = "not found") -> None:
        super().__init__(f"Variable '{name}' could not be resolved: {reason}")
        self.name = name


class PublishError(NeurioError):
    """Writing a value to a destination variable failed."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to write variable '{name}': {reason}")
        self.name = name
