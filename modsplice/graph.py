"""Module graph resolution: which modules are replaceable, and where they live."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Set, Tuple

from .bundle import BundleGraph, ModuleRecord
from .config import INCLUDE_PREFIX, RELATIVE_PREFIX
from .errors import ShapeError


@dataclass(frozen=True)
class ReplaceableModuleRef:
    name: str
    start: int
    end: int


def _lookup(graph: BundleGraph, module_id: int, name: str) -> ModuleRecord:
    module = graph.modules.get(module_id)
    if module is None:
        raise ShapeError("modules", f"module {name} (id {module_id}) not found")
    return module


def _strip_matching(deps: dict, prefix: str) -> List[Tuple[str, int]]:
    return [(ref[len(prefix):], mid) for ref, mid in deps.items() if ref.startswith(prefix)]


def resolve(
    graph: BundleGraph,
    *,
    include_prefix: str = INCLUDE_PREFIX,
    relative_prefix: str = RELATIVE_PREFIX,
) -> List[ReplaceableModuleRef]:
    """Walk the module table from the entry point.

    Roots are the entry module's include-namespace dependencies; from there
    plain relative dependencies are followed. Each module id is recorded at
    most once, under the reference name it was first popped with.
    Output order follows discovery; sort by ``start`` before splicing.
    """
    entry = graph.modules.get(graph.entry_id)
    if entry is None:
        raise ShapeError("entry", f"entry point module {graph.entry_id} not found")

    stack = _strip_matching(entry.dependencies, include_prefix)
    visited: Set[int] = set()
    out: List[ReplaceableModuleRef] = []

    while stack:
        name, module_id = stack.pop()
        if module_id in visited:
            continue
        module = _lookup(graph, module_id, name)
        visited.add(module_id)
        out.append(ReplaceableModuleRef(name=name, start=module.body_start, end=module.body_end))
        stack.extend(_strip_matching(module.dependencies, relative_prefix))

    return out
