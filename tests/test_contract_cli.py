from __future__ import annotations

import hashlib
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from modsplice import cli
from modsplice.splice import wrap_replacement


REPO_ROOT = Path(__file__).resolve().parent.parent
FIXTURES = REPO_ROOT / "tests" / "fixtures"
BUNDLE_PATH = FIXTURES / "bundle_shared.js"


def _bundle_hash() -> str:
    return hashlib.sha256(BUNDLE_PATH.read_text(encoding="utf-8").encode("utf-8")).hexdigest()


def _write_manifest(root: Path, expected_hash: str) -> Path:
    path = root / "manifest.json"
    path.write_text(
        json.dumps(
            {
                "expected_hash": expected_hash,
                "replacements": {
                    "board": str(FIXTURES / "replacements" / "board.js"),
                    "coords": str(FIXTURES / "replacements" / "coords.js"),
                },
            }
        ),
        encoding="utf-8",
    )
    return path


class TestCliContract(unittest.TestCase):
    def test_hash_prints_baseline(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            cli.main(["hash", str(BUNDLE_PATH)])
        self.assertEqual(out.getvalue().strip(), _bundle_hash())

    def test_modules_lists_sorted_refs(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            cli.main(["modules", str(BUNDLE_PATH)])
        rows = [line.split("\t") for line in out.getvalue().splitlines()]
        self.assertEqual(sorted(r[0] for r in rows), ["board", "coords", "query", "util"])
        starts = [int(r[1]) for r in rows]
        self.assertEqual(starts, sorted(starts))

    def test_modules_rejects_non_bundle(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "x.js"
            p.write_text("var x = 1;", encoding="utf-8")
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["modules", str(p)])
        self.assertIn("Bundle rejected", str(ctx.exception))

    def test_patch_writes_patched_page(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            manifest = _write_manifest(root, _bundle_hash())
            out_path = root / "out" / "patched.html"
            with redirect_stdout(io.StringIO()):
                cli.main(
                    [
                        "patch",
                        "--page", str(FIXTURES / "page.html"),
                        "--manifest", str(manifest),
                        "--bundle-file", str(BUNDLE_PATH),
                        "--out", str(out_path),
                    ]
                )
            html = out_path.read_text(encoding="utf-8")

        board = (FIXTURES / "replacements" / "board.js").read_text(encoding="utf-8")
        coords = (FIXTURES / "replacements" / "coords.js").read_text(encoding="utf-8")
        self.assertIn('<script type="none/blocked" src="/pxls.js"></script><script>', html)
        self.assertEqual(html.count(wrap_replacement(board)), 1)
        self.assertEqual(html.count(wrap_replacement(coords)), 1)
        self.assertIn("module.exports.query={};", html)

    def test_patch_hash_mismatch_exits(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            manifest = _write_manifest(root, "0" * 64)
            with redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit) as ctx:
                    cli.main(
                        [
                            "patch",
                            "--page", str(FIXTURES / "page.html"),
                            "--manifest", str(manifest),
                            "--bundle-file", str(BUNDLE_PATH),
                            "--out", "-",
                        ]
                    )
        self.assertIn("does not match expected hash", str(ctx.exception))

    def test_patch_origin_defaults_from_env(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            manifest = _write_manifest(root, _bundle_hash())
            page = root / "page.html"
            page.write_text(
                '<html><body><script src="https://canvas.example/pxls.js"></script></body></html>',
                encoding="utf-8",
            )
            out = io.StringIO()
            with patch.dict(os.environ, {"MODSPLICE_ORIGIN": "https://canvas.example"}), redirect_stdout(out):
                cli.main(
                    [
                        "patch",
                        "--page", str(page),
                        "--manifest", str(manifest),
                        "--bundle-file", str(BUNDLE_PATH),
                        "--out", "-",
                    ]
                )

        self.assertIn('<script type="none/blocked" src="https://canvas.example/pxls.js"></script><script>', out.getvalue())


if __name__ == "__main__":
    unittest.main(verbosity=2)
