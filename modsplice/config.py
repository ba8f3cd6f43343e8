"""Engine settings (env-overridable defaults)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BUNDLE_PATH = "/pxls.js"
INCLUDE_PREFIX = "./include/"
RELATIVE_PREFIX = "./"
BLOCKED_SCRIPT_TYPE = "none/blocked"


def _env_timeout(raw: Optional[str]) -> Optional[float]:
    s = (raw or "").strip()
    if not s or s.lower() == "none":
        return None
    try:
        v = float(s)
    except ValueError:
        raise ValueError(f"MODSPLICE_FETCH_TIMEOUT must be a number of seconds, got {s!r}")
    if v <= 0:
        return None
    return v


@dataclass(frozen=True)
class EngineSettings:
    bundle_path: str = DEFAULT_BUNDLE_PATH
    include_prefix: str = INCLUDE_PREFIX
    relative_prefix: str = RELATIVE_PREFIX
    blocked_type: str = BLOCKED_SCRIPT_TYPE
    # None waits forever; a stalled fetch stalls every waiter.
    fetch_timeout: Optional[float] = None

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            bundle_path=os.getenv("MODSPLICE_BUNDLE_PATH", DEFAULT_BUNDLE_PATH) or DEFAULT_BUNDLE_PATH,
            fetch_timeout=_env_timeout(os.getenv("MODSPLICE_FETCH_TIMEOUT")),
        )
