# modsplice/util/console.py
from __future__ import annotations
import os
import sys
from typing import Any

_TRUTHY = ("1", "true", "yes", "on")


def eprint(*args: Any) -> None:
    print(*args, file=sys.stderr)


def debug_enabled() -> bool:
    return os.getenv("MODSPLICE_DEBUG", "").strip().lower() in _TRUTHY


def debug(message: str, *data: Any) -> None:
    if debug_enabled():
        eprint("[modsplice]", message, *data)
