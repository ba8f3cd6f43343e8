"""modsplice.api

Stable *library* entrypoint for modsplice.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

from modsplice.bundle import BundleGraph, ModuleRecord, parse_bundle
from modsplice.config import EngineSettings
from modsplice.engine import ModuleReplacementEngine
from modsplice.errors import (
    ConfigurationError,
    IntegrityError,
    ModuleReplacementError,
    NetworkError,
    ResolutionError,
    ShapeError,
    TimingError,
)
from modsplice.graph import ReplaceableModuleRef, resolve
from modsplice.hashing import hash_text
from modsplice.manifest import Manifest, load_manifest
from modsplice.page import Page, ReadyState, ScriptElement
from modsplice.registry import ReplacementRequest
from modsplice.splice import patch, wrap_replacement


# --- Public API exports (locked by contract tests) ------------------------
# Keep changes intentional and reviewable.
# Prefer append-only unless you are intentionally reshaping the public surface.
_PUBLIC_EXPORTS = (
    "BundleGraph",
    "ConfigurationError",
    "EngineSettings",
    "IntegrityError",
    "Manifest",
    "ModuleRecord",
    "ModuleReplacementEngine",
    "ModuleReplacementError",
    "NetworkError",
    "Page",
    "ReadyState",
    "ReplaceableModuleRef",
    "ReplacementRequest",
    "ResolutionError",
    "ScriptElement",
    "ShapeError",
    "TimingError",
    "hash_text",
    "load_manifest",
    "parse_bundle",
    "patch",
    "resolve",
    "wrap_replacement",
)

__all__ = [n for n in _PUBLIC_EXPORTS if n in globals()]
# --- /Public API exports --------------------------------------------------
