import asyncio
import hashlib

import pytest

from components.boundedcounter.errors import ScriptLoadError, ScriptRejected, UnknownScriptError
from components.boundedcounter.registry import ScriptRegistry
from components.boundedcounter.scripts import INCR_LIMIT_SCRIPT, read_script_sync
from components.boundedcounter.store import InMemoryScriptStore

BODY = read_script_sync(INCR_LIMIT_SCRIPT)


def make_registry():
    store = InMemoryScriptStore()
    return store, ScriptRegistry(store)


@pytest.mark.anyio
async def test_register_returns_content_digest_and_remembers_it():
    store, reg = make_registry()
    handle = await reg.register("incrWithLimit", BODY)
    assert handle == hashlib.sha1(BODY.encode("utf-8")).hexdigest()
    assert reg.handle_for("incrWithLimit") == handle
    assert reg.body_for("incrWithLimit") == BODY
    assert "incrWithLimit" in reg
    assert store.is_cached(handle)


def test_handle_for_unknown_identifier():
    _, reg = make_registry()
    with pytest.raises(UnknownScriptError) as ei:
        reg.handle_for("nope")
    assert ei.value.identifier == "nope"


@pytest.mark.anyio
async def test_malformed_script_is_not_added():
    _, reg = make_registry()
    with pytest.raises(ScriptLoadError) as ei:
        await reg.register("broken", "return (")
    assert ei.value.identifier == "broken"
    assert isinstance(ei.value.cause, ScriptRejected)
    assert "broken" not in reg


@pytest.mark.anyio
async def test_failed_reregistration_keeps_previous_handle():
    _, reg = make_registry()
    handle = await reg.register("incrWithLimit", BODY)
    with pytest.raises(ScriptLoadError):
        await reg.register("incrWithLimit", "garbage")
    assert reg.handle_for("incrWithLimit") == handle


@pytest.mark.anyio
async def test_register_rejects_empty_arguments():
    _, reg = make_registry()
    with pytest.raises(ValueError):
        await reg.register("", BODY)
    with pytest.raises(ValueError):
        await reg.register("x", "")


@pytest.mark.anyio
async def test_register_twice_same_body():
    store, reg = make_registry()
    h1 = await reg.register("incrWithLimit", BODY)
    h2 = await reg.register("incrWithLimit", BODY)
    assert h1 == h2
    assert await store.run_script(h2, ["c"], [10, 1]) == 1


@pytest.mark.anyio
async def test_concurrent_register_same_identifier():
    _, reg = make_registry()
    handles = await asyncio.gather(*(reg.register("incrWithLimit", BODY) for _ in range(10)))
    assert len(set(handles)) == 1
    assert list(reg.identifiers) == ["incrWithLimit"]


@pytest.mark.anyio
async def test_refresh_reuploads_after_flush():
    store, reg = make_registry()
    handle = await reg.register("incrWithLimit", BODY)
    store.flush_scripts()
    assert not store.is_cached(handle)
    assert await reg.refresh("incrWithLimit") == handle
    assert store.is_cached(handle)


@pytest.mark.anyio
async def test_refresh_unknown_identifier():
    _, reg = make_registry()
    with pytest.raises(UnknownScriptError):
        await reg.refresh("incrWithLimit")


@pytest.mark.anyio
async def test_register_all_fails_fast_and_keeps_earlier(tmp_path):
    _, reg = make_registry()
    sources = {
        "first": INCR_LIMIT_SCRIPT,
        "missing": tmp_path / "does_not_exist.lua",
        "last": INCR_LIMIT_SCRIPT,
    }
    with pytest.raises(ScriptLoadError) as ei:
        await reg.register_all(sources)
    assert ei.value.identifier == "missing"
    assert isinstance(ei.value.cause, OSError)
    assert "first" in reg
    assert "last" not in reg


@pytest.mark.anyio
async def test_register_all_empty_file(tmp_path):
    _, reg = make_registry()
    empty = tmp_path / "empty.lua"
    empty.write_text("   \n", encoding="utf-8")
    with pytest.raises(ScriptLoadError):
        await reg.register_all({"empty": empty})


@pytest.mark.anyio
async def test_clear_discards_mapping():
    _, reg = make_registry()
    await reg.register_all({"incrWithLimit": INCR_LIMIT_SCRIPT})
    reg.clear()
    assert list(reg.identifiers) == []
    with pytest.raises(UnknownScriptError):
        reg.handle_for("incrWithLimit")
