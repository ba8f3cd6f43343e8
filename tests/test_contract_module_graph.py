from __future__ import annotations

import unittest
from pathlib import Path

from modsplice.bundle import BundleGraph, ModuleRecord, parse_bundle
from modsplice.errors import ShapeError
from modsplice.graph import ReplaceableModuleRef, resolve


REPO_ROOT = Path(__file__).resolve().parent.parent
FIXTURES = REPO_ROOT / "tests" / "fixtures"


def _graph(entry_id: int, *modules: ModuleRecord) -> BundleGraph:
    return BundleGraph(entry_id=entry_id, modules={m.id: m for m in modules})


class TestModuleGraphContract(unittest.TestCase):
    def test_include_roots_and_relative_dependencies(self) -> None:
        graph = _graph(
            10,
            ModuleRecord(10, 0, 5, {"./include/board": 11}),
            ModuleRecord(11, 10, 35, {"./util": 12}),
            ModuleRecord(12, 40, 52, {}),
        )
        refs = resolve(graph)
        self.assertEqual(
            set(refs),
            {
                ReplaceableModuleRef(name="board", start=10, end=35),
                ReplaceableModuleRef(name="util", start=40, end=52),
            },
        )

    def test_entry_relative_dependencies_are_not_roots(self) -> None:
        graph = _graph(
            1,
            ModuleRecord(1, 0, 1, {"./helpers": 2, "./include/a": 3}),
            ModuleRecord(2, 2, 3, {}),
            ModuleRecord(3, 4, 5, {}),
        )
        self.assertEqual([r.name for r in resolve(graph)], ["a"])

    def test_non_relative_dependencies_are_not_followed(self) -> None:
        graph = _graph(
            1,
            ModuleRecord(1, 0, 1, {"./include/a": 2}),
            ModuleRecord(2, 2, 3, {"jquery": 3}),
            ModuleRecord(3, 4, 5, {}),
        )
        self.assertEqual([r.name for r in resolve(graph)], ["a"])

    def test_shared_dependencies_are_recorded_once(self) -> None:
        text = (FIXTURES / "bundle_shared.js").read_text(encoding="utf-8")
        refs = resolve(parse_bundle(text))

        names = sorted(r.name for r in refs)
        self.assertEqual(names, ["board", "coords", "query", "util"])
        starts = [r.start for r in refs]
        self.assertEqual(len(starts), len(set(starts)))

    def test_cycles_terminate(self) -> None:
        graph = _graph(
            1,
            ModuleRecord(1, 0, 1, {"./include/a": 2}),
            ModuleRecord(2, 2, 3, {"./b": 3}),
            ModuleRecord(3, 4, 5, {"./a": 2}),
        )
        self.assertEqual(sorted(r.name for r in resolve(graph)), ["a", "b"])

    def test_resolution_is_deterministic(self) -> None:
        text = (FIXTURES / "bundle_shared.js").read_text(encoding="utf-8")
        graph = parse_bundle(text)
        self.assertEqual(resolve(graph), resolve(graph))

    def test_custom_prefixes(self) -> None:
        graph = _graph(
            1,
            ModuleRecord(1, 0, 1, {"@ext/a": 2}),
            ModuleRecord(2, 2, 3, {"~/b": 3}),
            ModuleRecord(3, 4, 5, {}),
        )
        refs = resolve(graph, include_prefix="@ext/", relative_prefix="~/")
        self.assertEqual(sorted(r.name for r in refs), ["a", "b"])

    def test_missing_entry_module(self) -> None:
        with self.assertRaises(ShapeError):
            resolve(_graph(99, ModuleRecord(1, 0, 1, {})))

    def test_missing_dependency_target(self) -> None:
        graph = _graph(1, ModuleRecord(1, 0, 1, {"./include/a": 7}))
        with self.assertRaises(ShapeError) as ctx:
            resolve(graph)
        self.assertIn("module a (id 7) not found", str(ctx.exception))


if __name__ == "__main__":
    unittest.main(verbosity=2)
