from .contracts import LIMIT_EXCEEDED, CounterOutcome, IncrRequest, IncrResult
from .errors import (
    BoundedCounterError,
    ScriptCacheMiss,
    ScriptLoadError,
    ScriptRejected,
    StoreExecutionError,
    UnknownScriptError,
)
from .registry import ScriptRegistry
from .service import BoundedCounterService
from .store import InMemoryScriptStore, RedisScriptStore, ScriptStore

__all__ = [
    "LIMIT_EXCEEDED",
    "CounterOutcome",
    "IncrRequest",
    "IncrResult",
    "BoundedCounterError",
    "ScriptCacheMiss",
    "ScriptLoadError",
    "ScriptRejected",
    "StoreExecutionError",
    "UnknownScriptError",
    "ScriptRegistry",
    "BoundedCounterService",
    "InMemoryScriptStore",
    "RedisScriptStore",
    "ScriptStore",
]
