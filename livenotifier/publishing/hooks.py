"""Operator extension hooks.

An extension is a plain Python file that may define either or both of::

    def on_receive(external_id): ...
    def on_send(job): ...

Each function may return ``None``, a dict with the ``HookResult`` fields, or a
``HookResult``. Hooks are side-channel notifications: whatever they return or
raise, the publish pipeline carries on.
"""
import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from livenotifier.publishing.job import Job

log = logging.getLogger(__name__)


@dataclass
class HookResult:
    filled: bool = False
    error: bool = False
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


class ExtensionHooks(Protocol):
    def on_receive(self, external_id: str) -> Optional[HookResult]: ...

    def on_send(self, job: Job) -> Optional[HookResult]: ...


class NoopHooks:
    def on_receive(self, external_id: str) -> Optional[HookResult]:
        return None

    def on_send(self, job: Job) -> Optional[HookResult]:
        return None


def _coerce(value: Any) -> HookResult:
    if value is None:
        return HookResult()
    if isinstance(value, HookResult):
        return value
    if isinstance(value, dict):
        return HookResult(
            filled=bool(value.get("filled", True)),
            error=bool(value.get("error", False)),
            message=str(value.get("message", "")),
            data=dict(value.get("data") or {}),
        )
    raise TypeError(f"unsupported hook result type {type(value).__name__}")


class ScriptHooks:
    def __init__(self, module):
        self._module = module

    @classmethod
    def from_path(cls, path: str) -> "ScriptHooks":
        """Load the extension file; a broken script is a startup error."""
        p = Path(path)
        spec = importlib.util.spec_from_file_location(f"livenotifier_plugin_{p.stem}", p)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot load plugin from {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        log.info("Loaded extension hooks from %s", path)
        return cls(module)

    def _call(self, name: str, arg: Any) -> Optional[HookResult]:
        fn: Optional[Callable[[Any], Any]] = getattr(self._module, name, None)
        if fn is None:
            log.debug("Extension has no %s function", name)
            return None
        try:
            result = _coerce(fn(arg))
        except Exception as e:
            log.debug("Extension %s failed: %s", name, e)
            return None
        if result.filled and result.error:
            log.debug("Extension %s reported an error: %s", name, result.message)
            return None
        return result

    def on_receive(self, external_id: str) -> Optional[HookResult]:
        return self._call("on_receive", external_id)

    def on_send(self, job: Job) -> Optional[HookResult]:
        return self._call("on_send", job)
