"""Replacement manifest I/O (CLI-facing)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .errors import ConfigurationError
from .registry import ReplacementRequest


@dataclass(frozen=True)
class Manifest:
    expected_hash: str
    requests: Tuple[ReplacementRequest, ...]


def load_manifest(path: Path) -> Manifest:
    """Load a replacement manifest from JSON.

    Expected format:
      {
        "expected_hash": "<sha256 hex of the original bundle>",
        "replacements": { "<module name>": "<path to replacement body>", ... }
      }

    Body paths are resolved relative to the manifest's directory.
    """

    try:
        obj = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"cannot read manifest {path}: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigurationError("manifest must be a JSON object")

    expected_hash = obj.get("expected_hash")
    if not isinstance(expected_hash, str) or not expected_hash.strip():
        raise ConfigurationError("manifest expected_hash must be a non-empty string")

    raw = obj.get("replacements")
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError("manifest replacements must be a non-empty object mapping name -> file")

    base = path.parent
    requests = []
    for name, rel in raw.items():
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError("manifest replacements must use non-empty string module names")
        if not isinstance(rel, str) or not rel.strip():
            raise ConfigurationError(f"replacement file for {name} must be a non-empty string")
        body_path = base / rel
        try:
            body = body_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"cannot read replacement for {name}: {e}") from e
        requests.append(ReplacementRequest(target_name=name, replacement_body=body))

    return Manifest(expected_hash=expected_hash.strip(), requests=tuple(requests))
