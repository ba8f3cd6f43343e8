"""Replacement registry: baseline hash plus one request per module name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .errors import ConfigurationError
from .util.console import debug


@dataclass(frozen=True)
class ReplacementRequest:
    """Replace the module registered as ``target_name`` with ``replacement_body``.

    The body is the body of a ``function(requireFn, moduleExport){...}``.
    """

    target_name: str
    replacement_body: str


def _require_str(v: Any, what: str) -> str:
    if not isinstance(v, str) or not v.strip():
        raise ConfigurationError(f"{what} must be a non-empty string")
    return v


class ReplacementRegistry:
    def __init__(self) -> None:
        self._baseline: Optional[str] = None
        self._requests: List[ReplacementRequest] = []

    @property
    def baseline(self) -> Optional[str]:
        return self._baseline

    @property
    def requests(self) -> Tuple[ReplacementRequest, ...]:
        return tuple(self._requests)

    def __len__(self) -> int:
        return len(self._requests)

    def check(self, expected_hash: str, request: ReplacementRequest) -> None:
        """Validate a registration without mutating anything."""
        _require_str(expected_hash, "expected hash")
        if not isinstance(request, ReplacementRequest):
            raise ConfigurationError("request must be a ReplacementRequest")
        _require_str(request.target_name, "target name")
        if not isinstance(request.replacement_body, str):
            raise ConfigurationError(f"replacement body for {request.target_name} must be a string")

        if self._baseline is not None and self._baseline != expected_hash:
            raise ConfigurationError(
                f"module replacement expected hash {expected_hash} does not match "
                f"current expected hash {self._baseline}"
            )
        if any(r.target_name == request.target_name for r in self._requests):
            raise ConfigurationError(f"module replacement for {request.target_name} already registered")

    def register(self, expected_hash: str, request: ReplacementRequest) -> None:
        self.check(expected_hash, request)
        if self._baseline is None:
            self._baseline = expected_hash
        self._requests.append(request)
        debug("registered module replacement", request.target_name, expected_hash)
