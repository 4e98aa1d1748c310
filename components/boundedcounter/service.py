from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import redis.asyncio as redis

from .config import CounterSettings
from .contracts import LIMIT_EXCEEDED, IncrOutcome
from .errors import ScriptCacheMiss, StoreExecutionError
from .registry import ScriptRegistry
from .scripts import LUA_DIR
from .store import RedisScriptStore, ScriptStore

log = logging.getLogger("boundedcounter")

INCR_WITH_LIMIT = "incrWithLimit"

# identifier -> file name under the script directory
SCRIPTS: Dict[str, str] = {
    INCR_WITH_LIMIT: "incr_limit.lua",
}


def _check_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return value


def _resolve_args(args: Tuple[Any, ...], delta: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    # (limit) | (delta, limit), mirroring the positional form of the Lua ARGV
    if len(args) > 2:
        raise TypeError(f"incr_with_limit takes at most 2 positional values, got {len(args)}")
    if len(args) == 2:
        if delta is not None or limit is not None:
            raise TypeError("delta/limit given both positionally and by keyword")
        delta, limit = args
    elif len(args) == 1:
        if limit is None:
            limit = args[0]
        elif delta is None:
            delta = args[0]
        else:
            raise TypeError("delta/limit given both positionally and by keyword")
    if limit is None:
        raise TypeError("incr_with_limit requires a limit")
    if delta is None:
        delta = 1
    return _check_int("delta", delta), _check_int("limit", limit)


def _to_outcome(reply: Any) -> IncrOutcome:
    if reply == LIMIT_EXCEEDED.value:
        return LIMIT_EXCEEDED
    if isinstance(reply, int) and not isinstance(reply, bool):
        return reply
    raise StoreExecutionError(f"unexpected script reply: {reply!r}")


class BoundedCounterService:
    """Atomic "increment within limit" on counters held by a script-capable store.

    The read, the limit check and the write all happen inside one script
    evaluated by the store, so concurrent callers need no client-side locks.

    Pass ``store`` (any ScriptStore) or ``client`` (a redis.asyncio.Redis) to
    reuse an existing connection; it is left open on quit(). Otherwise a
    Redis connection is created from settings and closed on quit().
    """

    def __init__(
        self,
        store: Optional[ScriptStore] = None,
        *,
        client: Optional[redis.Redis] = None,
        settings: Optional[CounterSettings] = None,
        registry: Optional[ScriptRegistry] = None,
    ):
        if store is not None and client is not None:
            raise ValueError("pass either store or client, not both")
        self.settings = settings or CounterSettings()
        if store is not None:
            self.store = store
            self.owns_store = False
        elif client is not None:
            self.store = RedisScriptStore(client)
            self.owns_store = False
        else:
            self.store = RedisScriptStore.from_url(self.settings.REDIS_URL)
            self.owns_store = True
        self.registry = registry or ScriptRegistry(self.store)
        self._initialized = False
        self._store_closed = False

    # ---------- Lifecycle ----------
    @property
    def initialized(self) -> bool:
        return self._initialized

    def script_sources(self) -> Dict[str, Path]:
        base = Path(self.settings.COUNTER_SCRIPT_DIR) if self.settings.COUNTER_SCRIPT_DIR else LUA_DIR
        return {identifier: base / filename for identifier, filename in SCRIPTS.items()}

    async def init(self) -> None:
        """Register every script with the store. Must finish before incr_with_limit."""
        handles = await self.registry.register_all(self.script_sources())
        self._initialized = True
        self._store_closed = False
        log.info("counter.init ok scripts=%s", ",".join(handles))

    async def quit(self) -> None:
        """Forget script handles; close the store only if this service created it."""
        self._initialized = False
        self.registry.clear()
        if self.owns_store and not self._store_closed:
            self._store_closed = True
            await self.store.close()
        log.info("counter.quit owned_store=%s", self.owns_store)

    async def __aenter__(self) -> "BoundedCounterService":
        await self.init()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.quit()

    # ---------- Public API ----------
    async def incr_with_limit(
        self,
        key: str,
        *args: int,
        delta: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> IncrOutcome:
        """
        Add ``delta`` (default 1) to the counter at ``key`` unless the result
        would exceed ``limit`` or drop below zero.

        Called as ``incr_with_limit(key, limit)`` or
        ``incr_with_limit(key, delta, limit)``; keywords work too.
        Returns the new value, or LIMIT_EXCEEDED with the counter untouched.
        """
        if not isinstance(key, str) or not key:
            raise ValueError("key must be a non-empty string")
        delta, limit = _resolve_args(args, delta, limit)

        handle = self.registry.handle_for(INCR_WITH_LIMIT)
        keys = [self.settings.COUNTER_KEY_PREFIX + key]
        argv = [limit, delta]
        try:
            reply = await self.store.run_script(handle, keys, argv)
        except ScriptCacheMiss:
            log.warning("counter.script_missing id=%s handle=%s; reloading", INCR_WITH_LIMIT, handle)
            handle = await self.registry.refresh(INCR_WITH_LIMIT)
            try:
                reply = await self.store.run_script(handle, keys, argv)
            except ScriptCacheMiss as e:
                raise StoreExecutionError(f"script {INCR_WITH_LIMIT!r} missing again after reload", e) from e
        return _to_outcome(reply)
