"""Blocks the original bundle from executing while the page loads."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from .config import BLOCKED_SCRIPT_TYPE
from .errors import TimingError
from .page import MutationObserver, Node, Page, ReadyState, ScriptElement
from .util.console import debug


class LoadInterceptor:
    def __init__(
        self,
        page: Page,
        bundle_url: str,
        *,
        host_initialized: Callable[[], bool],
        blocked_type: str = BLOCKED_SCRIPT_TYPE,
    ) -> None:
        self.page = page
        self.bundle_url = bundle_url
        self.blocked_type = blocked_type
        self._host_initialized = host_initialized
        self._observer: Optional[MutationObserver] = None
        self.installed = False
        self.neutralized: List[ScriptElement] = []

    @property
    def anchor(self) -> Optional[ScriptElement]:
        """The first neutralized original, where the patched program goes."""
        return self.neutralized[0] if self.neutralized else None

    def install(self) -> None:
        # The timing check comes first: a repeat call after load is still an error.
        if self.page.ready_state is not ReadyState.LOADING:
            raise TimingError("attempted to install bundle blocker after document load")
        if self.installed:
            return
        self._observer = self.page.observe(self._on_mutations)
        self.page.on_load(self.disconnect)
        self.installed = True
        debug("bundle blocker installed", self.bundle_url)

    def _on_mutations(self, added: Sequence[Node]) -> None:
        for node in added:
            if not isinstance(node, ScriptElement):
                continue
            if self.page.script_url(node) != self.bundle_url:
                continue
            debug("found bundle script node", self.bundle_url)
            node.type = self.blocked_type
            self.neutralized.append(node)

    def disconnect(self) -> None:
        if self._observer is None:
            return
        self._observer.disconnect()
        self._observer = None
        debug("bundle blocker disconnected")

    def check_blocked(self) -> None:
        """Raise TimingError if the host application initialized anyway."""
        if self._host_initialized():
            raise TimingError("host application loaded although its bundle was blocked")
