from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

from .bundle import parse_bundle
from .config import EngineSettings
from .engine import ModuleReplacementEngine
from .errors import ModuleReplacementError
from .fetch import file_fetcher
from .graph import resolve
from .hashing import hash_file
from .manifest import load_manifest
from .page import Page


def _read_text(path: str, what: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SystemExit(f"Cannot read {what} '{path}': {e}")


def _cmd_hash(args: argparse.Namespace) -> None:
    try:
        print(hash_file(args.file))
    except OSError as e:
        raise SystemExit(f"Cannot read bundle '{args.file}': {e}")


def _cmd_modules(args: argparse.Namespace) -> None:
    text = _read_text(args.file, "bundle")
    settings = EngineSettings.from_env()
    try:
        graph = parse_bundle(text)
        refs = resolve(
            graph,
            include_prefix=settings.include_prefix,
            relative_prefix=settings.relative_prefix,
        )
    except ModuleReplacementError as e:
        raise SystemExit(f"Bundle rejected: {e}")
    for ref in sorted(refs, key=lambda r: r.start):
        print(f"{ref.name}\t{ref.start}\t{ref.end}")


async def patch_page(
    html_text: str,
    *,
    origin: str,
    manifest_path: Path,
    bundle_file: str | None = None,
    settings: EngineSettings | None = None,
) -> str:
    """Run one full page load offline and return the rendered, patched page."""
    manifest = load_manifest(manifest_path)
    page = Page(origin)
    fetch = file_fetcher(bundle_file) if bundle_file else None
    engine = ModuleReplacementEngine(page, settings=settings, fetch=fetch)
    for req in manifest.requests:
        engine.register(manifest.expected_hash, req)

    page.feed(html_text)
    page.finish_loading()
    await engine.wait_for_ready()
    return page.render()


def _cmd_patch(args: argparse.Namespace) -> None:
    html_text = _read_text(args.page, "page")
    try:
        out_html = asyncio.run(
            patch_page(
                html_text,
                origin=args.origin,
                manifest_path=Path(args.manifest),
                bundle_file=args.bundle_file,
            )
        )
    except ModuleReplacementError as e:
        raise SystemExit(f"Module replacement failed: {e}")

    if args.out == "-":
        sys.stdout.write(out_html)
        return

    out_path = os.path.abspath(args.out)
    try:
        Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SystemExit(f"Cannot create output directory '{Path(out_path).parent}': {e}")
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(out_html)
    print(out_path)


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(
        prog="modsplice",
        description="Replace named modules inside a pre-bundled page script before it runs.",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    p_hash = sub.add_parser("hash", help="Print the sha256 baseline hash of a bundle file")
    p_hash.add_argument("file", help="Bundle JavaScript file")
    p_hash.set_defaults(func=_cmd_hash)

    p_mod = sub.add_parser("modules", help="List replaceable modules of a bundle file")
    p_mod.add_argument("file", help="Bundle JavaScript file")
    p_mod.set_defaults(func=_cmd_modules)

    p_patch = sub.add_parser("patch", help="Patch a page's bundle per a replacement manifest")
    p_patch.add_argument("--page", required=True, help="HTML page that loads the bundle")
    p_patch.add_argument("--manifest", required=True, help="Replacement manifest JSON")
    p_patch.add_argument(
        "--origin",
        default=os.getenv("MODSPLICE_ORIGIN", "https://pxls.space"),
        help="Page origin the bundle is fetched from (default: env MODSPLICE_ORIGIN or https://pxls.space)",
    )
    p_patch.add_argument("--bundle-file", default=None, help="Serve the bundle from this local file instead of fetching it")
    p_patch.add_argument(
        "--out",
        default=os.path.join("build", "patched.html"),
        help="Output HTML path, or '-' for stdout (default: ./build/patched.html)",
    )
    p_patch.set_defaults(func=_cmd_patch)

    args = ap.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
