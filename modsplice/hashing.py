from __future__ import annotations

import hashlib
from pathlib import Path


def hash_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()


def hash_text(text: str) -> str:
    """Hex sha256 of the UTF-8 encoding of ``text`` (the baseline format)."""
    return hash_bytes(text.encode("utf-8"))


def hash_file(path: str | Path) -> str:
    return hash_text(Path(path).read_text(encoding="utf-8"))
