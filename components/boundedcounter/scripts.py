from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any, Dict, Sequence, Union

from .contracts import LIMIT_EXCEEDED

LUA_DIR = Path(__file__).resolve().parent / "lua"
INCR_LIMIT_SCRIPT = LUA_DIR / "incr_limit.lua"

PathLike = Union[str, Path]

# what INCRBY accepts as a stored integer
_INTEGER = re.compile(r"-?\d+")


def read_script_sync(path: PathLike) -> str:
    body = Path(path).read_text(encoding="utf-8")
    if not body.strip():
        raise ValueError(f"script file {path} is empty")
    return body


async def read_script(path: PathLike) -> str:
    """Read a script body without blocking the event loop."""
    return await asyncio.to_thread(read_script_sync, path)


def incr_limit_local(data: Dict[str, Any], keys: Sequence[str], args: Sequence[Any]) -> Any:
    """
    Python twin of lua/incr_limit.lua, evaluated by InMemoryScriptStore.
    Caller must hold the store lock.
    """
    key = keys[0]
    raw = data.get(key)
    if raw is None:
        current = 0
    elif _INTEGER.fullmatch(str(raw)):
        current = int(raw)
    else:
        raise ValueError("ERR counter value is not an integer")
    try:
        limit = int(args[0])
        delta = int(args[1]) if len(args) > 1 else 1
    except (TypeError, ValueError, IndexError):
        raise ValueError("ERR limit and delta must be integers") from None

    candidate = current + delta
    if candidate > limit or candidate < 0:
        return LIMIT_EXCEEDED.value
    data[key] = str(candidate)
    return candidate
