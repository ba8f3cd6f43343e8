"""Bundle source retrieval."""

from __future__ import annotations

from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx

from .errors import NetworkError
from .util.console import debug

Fetcher = Callable[[str], Awaitable[str]]


async def fetch_program_text(
    url: str,
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """GET ``url`` and return the decoded body.

    Any transport failure or non-2xx status raises NetworkError.
    """
    debug("fetching bundle", url)
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.get(url)
    except httpx.HTTPError as e:
        raise NetworkError(url, f"{type(e).__name__}: {e}") from e

    if not resp.is_success:
        raise NetworkError(url, f"HTTP {resp.status_code}", status=resp.status_code)
    return resp.text


def file_fetcher(path: str | Path) -> Fetcher:
    """Return a fetcher that serves ``path`` for any URL (offline patching)."""
    p = Path(path)

    async def _fetch(url: str) -> str:
        debug("serving bundle from file", str(p), url)
        try:
            return p.read_text(encoding="utf-8")
        except OSError as e:
            raise NetworkError(url, f"cannot read {p}: {e}") from e

    return _fetch
