"""Per-page module replacement lifecycle.

register() accumulates intent while the page is loading. When the page
finishes loading the pipeline runs once: fetch, verify, parse, resolve,
splice, activate. wait_for_ready() exposes the single shared outcome.

The load listener itself needs no event loop: when the page finishes loading
outside one, the pipeline is started by the first wait_for_ready() call.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Callable, Optional, Tuple

from .bundle import parse_bundle
from .config import EngineSettings
from .errors import IntegrityError, TimingError
from .fetch import Fetcher, fetch_program_text
from .graph import resolve
from .hashing import hash_text
from .interceptor import LoadInterceptor
from .page import Page, ReadyState, ScriptElement, bundle_is_live
from .registry import ReplacementRegistry, ReplacementRequest
from .splice import patch
from .util.console import debug, eprint


class ModuleReplacementEngine:
    def __init__(
        self,
        page: Page,
        *,
        settings: Optional[EngineSettings] = None,
        fetch: Optional[Fetcher] = None,
        hasher: Callable[[str], str] = hash_text,
        host_initialized: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.page = page
        self.settings = settings or EngineSettings.from_env()
        self.bundle_url = page.resolve_url(self.settings.bundle_path)
        self.registry = ReplacementRegistry()

        if host_initialized is None:
            host_initialized = partial(bundle_is_live, page, self.bundle_url)
        self._host_initialized = host_initialized
        self.interceptor = LoadInterceptor(
            page,
            self.bundle_url,
            host_initialized=host_initialized,
            blocked_type=self.settings.blocked_type,
        )
        self._fetch = fetch or partial(fetch_program_text, timeout=self.settings.fetch_timeout)
        self._hasher = hasher

        self._outcome: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Task] = None
        self._triggered = False
        self._started = False
        self._early_error: Optional[TimingError] = None
        self._pending: Tuple[ReplacementRequest, ...] = ()
        self.patched_element: Optional[ScriptElement] = None

        page.on_load(self._trigger)

    # --- registration (loading phase, synchronous) -------------------------

    def register(self, expected_hash: str, request: ReplacementRequest) -> None:
        """Register a replacement; installs the bundle blocker on first use.

        Raises ConfigurationError on a conflicting hash or duplicate target and
        TimingError once the page has left its loading phase. Either way the
        registry is left unchanged.
        """
        self.registry.check(expected_hash, request)
        self.interceptor.install()
        self.registry.register(expected_hash, request)

    # --- readiness (asynchronous, memoized) --------------------------------

    def _outcome_future(self) -> asyncio.Future:
        if self._outcome is None:
            self._outcome = asyncio.get_running_loop().create_future()
            self._outcome.add_done_callback(_report_failure)
        return self._outcome

    async def wait_for_ready(self) -> None:
        outcome = self._outcome_future()
        if self.page.ready_state is ReadyState.COMPLETE:
            self._trigger()
        self._start()
        # Shielded: a cancelled waiter must not cancel the shared pipeline.
        await asyncio.shield(outcome)

    def _trigger(self) -> None:
        """Load listener. Runs with or without an event loop."""
        if self._triggered:
            return
        self._triggered = True
        self.interceptor.disconnect()

        if self.registry.baseline is None:
            # Nothing registered, so nothing was blocked: the original runs as-is.
            debug("no module replacements registered; leaving bundle untouched")
        else:
            try:
                self.interceptor.check_blocked()
            except TimingError as e:
                self._early_error = e
            self._pending = self.registry.requests

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            debug("page loaded outside an event loop; pipeline starts on first wait_for_ready()")
            return
        self._start()

    def _start(self) -> None:
        """Settle the outcome or launch the pipeline, once, on the running loop."""
        if not self._triggered or self._started:
            return
        self._started = True
        outcome = self._outcome_future()

        if self._early_error is not None:
            outcome.set_exception(self._early_error)
            return
        baseline = self.registry.baseline
        if baseline is None:
            outcome.set_result(None)
            return

        self._task = asyncio.ensure_future(self._run(baseline, self._pending))
        self._task.add_done_callback(self._settle)

    def _settle(self, task: asyncio.Task) -> None:
        outcome = self._outcome
        if outcome.done():
            return
        if task.cancelled():
            outcome.cancel()
            return
        exc = task.exception()
        if exc is not None:
            outcome.set_exception(exc)
        else:
            outcome.set_result(None)

    # --- pipeline -----------------------------------------------------------

    async def _run(self, baseline: str, requests: Tuple[ReplacementRequest, ...]) -> None:
        debug("running module replacement", baseline, [r.target_name for r in requests])
        program = await self._fetch(self.bundle_url)

        digest = self._hasher(program)
        if digest != baseline:
            raise IntegrityError(expected=baseline, actual=digest)

        graph = parse_bundle(program)
        refs = resolve(
            graph,
            include_prefix=self.settings.include_prefix,
            relative_prefix=self.settings.relative_prefix,
        )
        debug("resolved modules", refs)

        patched = patch(program, refs, requests)
        self._activate(patched)

    def _activate(self, patched: str) -> None:
        if self._host_initialized():
            raise TimingError(
                "module replacement failed: host application already loaded, "
                "detected just before script replacement"
            )
        el = ScriptElement(text=patched)
        anchor = self.interceptor.anchor
        if anchor is not None:
            self.page.insert_after(anchor, el)
        else:
            self.page.append(el)
        self.patched_element = el
        debug("patched bundle activated", len(patched))


def _report_failure(outcome: asyncio.Future) -> None:
    if outcome.cancelled():
        return
    exc = outcome.exception()
    if exc is not None:
        eprint(f"[modsplice] ERROR: module replacement failed: {exc}")
