from __future__ import annotations

import hashlib
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import redis.asyncio as redis
from redis.exceptions import NoScriptError, RedisError, ResponseError

from .errors import ScriptCacheMiss, ScriptRejected, StoreExecutionError
from .scripts import INCR_LIMIT_SCRIPT, read_script_sync, incr_limit_local

# (data, keys, args) -> reply
ScriptProgram = Callable[[Dict[str, Any], Sequence[str], Sequence[Any]], Any]


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class ScriptStore:
    """Port interface for a store that caches and atomically evaluates scripts."""

    async def load_script(self, body: str) -> str:
        """Validate and cache a script body; return its handle."""
        raise NotImplementedError

    async def run_script(self, handle: str, keys: Sequence[str], args: Sequence[Any]) -> Any:
        """Evaluate a cached script. Raises ScriptCacheMiss when the handle is unknown."""
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError


class RedisScriptStore(ScriptStore):
    """Redis adapter: SCRIPT LOAD + EVALSHA over redis.asyncio."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisScriptStore":
        return cls(redis.from_url(url))

    async def load_script(self, body: str) -> str:
        try:
            handle = await self.client.script_load(body)
        except ResponseError as e:
            raise ScriptRejected(str(e), e) from e
        except RedisError as e:
            raise StoreExecutionError(str(e), e) from e
        return _decode(handle)

    async def run_script(self, handle: str, keys: Sequence[str], args: Sequence[Any]) -> Any:
        try:
            result = await self.client.evalsha(handle, len(keys), *keys, *args)
        except NoScriptError as e:
            raise ScriptCacheMiss(handle, e) from e
        except RedisError as e:
            raise StoreExecutionError(str(e), e) from e
        return _decode(result)

    async def close(self) -> None:
        await self.client.aclose()


def default_programs() -> Dict[str, ScriptProgram]:
    return {read_script_sync(INCR_LIMIT_SCRIPT): incr_limit_local}


class InMemoryScriptStore(ScriptStore):
    """Thread-safe in-memory store with coarse-grained lock.

    Scripts are "compiled" by looking the body up in a table of Python
    programs; any other body is rejected as malformed. Handles are SHA1
    digests of the body, as with Redis. For single-process dev/testing.
    """

    def __init__(self, programs: Optional[Mapping[str, ScriptProgram]] = None):
        self._data: Dict[str, Any] = {}
        self._programs: Dict[str, ScriptProgram] = dict(programs if programs is not None else default_programs())
        self._scripts: Dict[str, ScriptProgram] = {}
        self._lock = threading.RLock()
        self.closed = False

    def _ensure_open(self) -> None:
        if self.closed:
            raise StoreExecutionError("store connection is closed")

    async def load_script(self, body: str) -> str:
        with self._lock:
            self._ensure_open()
            program = self._programs.get(body)
            if program is None:
                raise ScriptRejected("ERR Error compiling script")
            handle = hashlib.sha1(body.encode("utf-8")).hexdigest()
            self._scripts[handle] = program
            return handle

    async def run_script(self, handle: str, keys: Sequence[str], args: Sequence[Any]) -> Any:
        with self._lock:
            self._ensure_open()
            program = self._scripts.get(handle)
            if program is None:
                raise ScriptCacheMiss(handle)
            try:
                return program(self._data, keys, args)
            except ValueError as e:
                raise StoreExecutionError(str(e), e) from e

    async def close(self) -> None:
        self.closed = True

    # ---------- Test helpers ----------
    def flush_scripts(self) -> None:
        """Drop every cached script, like SCRIPT FLUSH or a server restart."""
        with self._lock:
            self._scripts.clear()

    def is_cached(self, handle: str) -> bool:
        with self._lock:
            return handle in self._scripts

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = str(value)
