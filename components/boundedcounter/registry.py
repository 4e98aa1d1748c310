from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Mapping

from .errors import ScriptLoadError, UnknownScriptError
from .scripts import PathLike, read_script
from .store import ScriptStore

log = logging.getLogger("boundedcounter")


class ScriptRegistry:
    """Maps local script identifiers to store-issued handles.

    Bodies are remembered alongside handles so a script evicted from the
    store's cache can be uploaded again. Writes for one identifier are
    serialized; lookups are plain dict reads.
    """

    def __init__(self, store: ScriptStore):
        self.store = store
        self._handles: Dict[str, str] = {}
        self._bodies: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._handles

    @property
    def identifiers(self) -> Iterable[str]:
        return tuple(self._handles)

    def _lock_for(self, identifier: str) -> asyncio.Lock:
        lock = self._locks.get(identifier)
        if lock is None:
            lock = self._locks[identifier] = asyncio.Lock()
        return lock

    async def register(self, identifier: str, body: str) -> str:
        if not identifier:
            raise ValueError("identifier must be non-empty")
        if not body:
            raise ValueError("script body must be non-empty")

        async with self._lock_for(identifier):
            try:
                handle = await self.store.load_script(body)
            except Exception as e:
                log.error("script.register err id=%s cause=%s", identifier, e)
                raise ScriptLoadError(identifier, e) from e
            self._handles[identifier] = handle
            self._bodies[identifier] = body
        log.debug("script.register ok id=%s handle=%s", identifier, handle)
        return handle

    def handle_for(self, identifier: str) -> str:
        try:
            return self._handles[identifier]
        except KeyError:
            raise UnknownScriptError(identifier) from None

    def body_for(self, identifier: str) -> str:
        try:
            return self._bodies[identifier]
        except KeyError:
            raise UnknownScriptError(identifier) from None

    async def refresh(self, identifier: str) -> str:
        """Upload the remembered body again and replace the handle."""
        return await self.register(identifier, self.body_for(identifier))

    async def register_all(self, sources: Mapping[str, PathLike]) -> Dict[str, str]:
        """Read and register each source in order; stop at the first failure.

        Identifiers registered before the failure keep their handles.
        """
        handles: Dict[str, str] = {}
        for identifier, path in sources.items():
            try:
                body = await read_script(path)
            except (OSError, ValueError) as e:
                log.error("script.read err id=%s path=%s cause=%s", identifier, path, e)
                raise ScriptLoadError(identifier, e) from e
            handles[identifier] = await self.register(identifier, body)
        return handles

    def clear(self) -> None:
        self._handles.clear()
        self._bodies.clear()
        self._locks.clear()
