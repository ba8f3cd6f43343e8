# Page model: script elements, mutation observers and the load lifecycle
from __future__ import annotations

import html as _html
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import urljoin


class ReadyState(str, Enum):
    LOADING = "loading"
    INTERACTIVE = "interactive"
    COMPLETE = "complete"


_SCRIPT_RE = re.compile(
    r"<script\b(?P<attrs>[^>]*)>(?P<body>.*?)</script\s*>",
    flags=re.IGNORECASE | re.DOTALL,
)

_ATTR_RE = re.compile(
    r'(?P<name>[^\s"\'>/=]+)(?:\s*=\s*(?:"(?P<dq>[^"]*)"|\'(?P<sq>[^\']*)\'|(?P<bare>[^\s"\'>]+)))?',
)

_SCRIPT_CLOSE_RE = re.compile(r"</(script)", flags=re.IGNORECASE)

# Types a browser executes as classic or module scripts.
_JS_TYPES = frozenset(
    {
        "",
        "module",
        "text/javascript",
        "application/javascript",
        "application/ecmascript",
        "text/ecmascript",
        "application/x-javascript",
    }
)


def _parse_attrs(attrs: str) -> Dict[str, Optional[str]]:
    out: Dict[str, Optional[str]] = {}
    for m in _ATTR_RE.finditer(attrs or ""):
        name = m.group("name").lower()
        if name in out:
            continue
        raw = m.group("dq")
        if raw is None:
            raw = m.group("sq")
        if raw is None:
            raw = m.group("bare")
        out[name] = _html.unescape(raw) if raw is not None else None
    return out


@dataclass(eq=False)
class ScriptElement:
    """A ``<script>`` element; identity-compared like a DOM node."""

    attrs: Dict[str, Optional[str]] = field(default_factory=dict)
    text: str = ""

    @property
    def src(self) -> Optional[str]:
        return self.attrs.get("src")

    @property
    def type(self) -> Optional[str]:
        return self.attrs.get("type")

    @type.setter
    def type(self, value: Optional[str]) -> None:
        if value is None:
            self.attrs.pop("type", None)
        else:
            self.attrs["type"] = value

    def is_executable(self) -> bool:
        t = (self.type or "").split(";")[0].strip().lower()
        return t in _JS_TYPES

    def render(self) -> str:
        parts = ["<script"]
        for name, value in self.attrs.items():
            if value is None:
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{_html.escape(value, quote=True)}"')
        parts.append(">")
        parts.append(_SCRIPT_CLOSE_RE.sub(r"<\\/\1", self.text))
        parts.append("</script>")
        return "".join(parts)


Node = Union[str, ScriptElement]
MutationCallback = Callable[[Sequence[Node]], None]


class MutationObserver:
    def __init__(self, page: "Page", callback: MutationCallback) -> None:
        self._page = page
        self.callback = callback
        self.connected = True

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        self._page._observers.remove(self)


class Page:
    """In-memory stand-in for a hosting document.

    Nodes are raw markup chunks (``str``) and ``ScriptElement`` objects.
    Observers are notified synchronously for every inserted node, the way a
    MutationObserver sees nodes before the parser hands a script to the
    runtime.
    """

    def __init__(self, origin: str, *, ready_state: ReadyState = ReadyState.LOADING) -> None:
        self.origin = origin.rstrip("/")
        self.ready_state = ready_state
        self.nodes: List[Node] = []
        self._observers: List[MutationObserver] = []
        self._load_listeners: List[Callable[[], None]] = []

    def resolve_url(self, ref: str) -> str:
        return urljoin(self.origin + "/", ref)

    def script_url(self, el: ScriptElement) -> Optional[str]:
        src = el.src
        if not src:
            return None
        return self.resolve_url(src.strip())

    def scripts(self) -> List[ScriptElement]:
        return [n for n in self.nodes if isinstance(n, ScriptElement)]

    def observe(self, callback: MutationCallback) -> MutationObserver:
        obs = MutationObserver(self, callback)
        self._observers.append(obs)
        return obs

    def _notify(self, added: Sequence[Node]) -> None:
        for obs in list(self._observers):
            if obs.connected:
                obs.callback(added)

    def append(self, node: Node) -> None:
        self.nodes.append(node)
        self._notify([node])

    def insert_after(self, anchor: ScriptElement, node: Node) -> None:
        for i, n in enumerate(self.nodes):
            if n is anchor:
                self.nodes.insert(i + 1, node)
                self._notify([node])
                return
        raise ValueError("anchor element is not part of this page")

    def feed(self, html_text: str) -> None:
        """Stream markup into the page, one node at a time."""
        pos = 0
        for m in _SCRIPT_RE.finditer(html_text):
            if m.start() > pos:
                self.append(html_text[pos:m.start()])
            self.append(ScriptElement(attrs=_parse_attrs(m.group("attrs")), text=m.group("body") or ""))
            pos = m.end()
        if pos < len(html_text):
            self.append(html_text[pos:])

    def on_load(self, callback: Callable[[], None]) -> None:
        self._load_listeners.append(callback)

    def finish_loading(self) -> None:
        if self.ready_state is not ReadyState.LOADING:
            raise RuntimeError(f"page already finished loading (state={self.ready_state.value})")
        self.ready_state = ReadyState.INTERACTIVE
        self.ready_state = ReadyState.COMPLETE
        for cb in list(self._load_listeners):
            cb()

    def render(self) -> str:
        return "".join(n if isinstance(n, str) else n.render() for n in self.nodes)


def bundle_is_live(page: Page, bundle_url: str) -> bool:
    """Default host probe: an executable script for ``bundle_url`` is present."""
    for el in page.scripts():
        if el.is_executable() and page.script_url(el) == bundle_url:
            return True
    return False


__all__ = [
    "MutationObserver",
    "Page",
    "ReadyState",
    "ScriptElement",
    "bundle_is_live",
]
