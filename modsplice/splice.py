"""Text-level substitution of module bodies."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from .errors import ResolutionError
from .graph import ReplaceableModuleRef
from .registry import ReplacementRequest
from .util.console import debug

WRAPPER_PARAMS = ("requireFn", "moduleExport")


def wrap_replacement(body: str) -> str:
    return f"function({','.join(WRAPPER_PARAMS)}){{{body}}}"


def match_requests(
    refs: Iterable[ReplaceableModuleRef],
    requests: Sequence[ReplacementRequest],
) -> List[Tuple[ReplaceableModuleRef, ReplacementRequest]]:
    """Pair each request with its single ref, sorted by span start."""
    by_name: Dict[str, List[ReplaceableModuleRef]] = {}
    for ref in refs:
        by_name.setdefault(ref.name, []).append(ref)

    pairs: List[Tuple[ReplaceableModuleRef, ReplacementRequest]] = []
    for req in requests:
        found = by_name.get(req.target_name) or []
        if not found:
            raise ResolutionError(f"no module named {req.target_name!r} in the resolved module graph")
        if len(found) > 1:
            spans = ", ".join(f"{r.start}-{r.end}" for r in found)
            raise ResolutionError(f"module name {req.target_name!r} is ambiguous ({spans})")
        pairs.append((found[0], req))

    pairs.sort(key=lambda p: p[0].start)
    for (a, _), (b, _) in zip(pairs, pairs[1:]):
        if b.start < a.end:
            raise ResolutionError(f"module spans overlap: {a.name!r} and {b.name!r}")
    return pairs


def patch(
    program: str,
    refs: Iterable[ReplaceableModuleRef],
    requests: Sequence[ReplacementRequest],
) -> str:
    pairs = match_requests(refs, requests)
    debug("modules to replace", [ref for ref, _ in pairs])

    parts: List[str] = []
    last_end = 0
    for ref, req in pairs:
        parts.append(program[last_end:ref.start])
        parts.append(wrap_replacement(req.replacement_body))
        last_end = ref.end
    parts.append(program[last_end:])
    return "".join(parts)
