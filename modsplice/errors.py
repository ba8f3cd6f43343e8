"""Error taxonomy for the module replacement pipeline.

Every failure is fatal for the current page load: nothing is retried and
nothing is recovered locally.
"""

from __future__ import annotations

from typing import Optional


class ModuleReplacementError(RuntimeError):
    """Base class for all module replacement failures."""


class ConfigurationError(ModuleReplacementError, ValueError):
    """Raised synchronously for conflicting or duplicate registrations."""


class TimingError(ModuleReplacementError):
    """Raised when a lifecycle checkpoint is hit at the wrong time."""


class IntegrityError(ModuleReplacementError):
    """Raised when the fetched bundle does not hash to the registered baseline."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"bundle hash {actual} does not match expected hash {expected}")


class ShapeError(ModuleReplacementError):
    """Raised when the parsed bundle does not have the expected bundling shape."""

    def __init__(self, location: str, reason: str) -> None:
        self.location = location
        self.reason = reason
        super().__init__(f"{location}: {reason}")


class ResolutionError(ModuleReplacementError):
    """Raised when a registered target name does not map to exactly one module."""


class NetworkError(ModuleReplacementError):
    def __init__(self, url: str, message: str, *, status: Optional[int] = None) -> None:
        self.url = url
        self.status = status
        super().__init__(f"failed to load {url}: {message}")


__all__ = [
    "ConfigurationError",
    "IntegrityError",
    "ModuleReplacementError",
    "NetworkError",
    "ResolutionError",
    "ShapeError",
    "TimingError",
]
