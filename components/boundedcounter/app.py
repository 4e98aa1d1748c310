from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException

from .contracts import IncrRequest, IncrResult
from .errors import ScriptLoadError, StoreExecutionError, UnknownScriptError
from .service import BoundedCounterService

router = APIRouter(prefix="/counter", tags=["counter"])

_service: Optional[BoundedCounterService] = None

async def get_service() -> BoundedCounterService:
    # Dependency hook for DI; can be overridden in tests / app factory.
    # The default service registers its scripts on first use.
    global _service
    if _service is None:
        _service = BoundedCounterService()
    if not _service.initialized:
        await _service.init()
    return _service

@router.post("/incr", response_model=IncrResult)
async def incr(req: IncrRequest, svc: BoundedCounterService = Depends(get_service)):
    try:
        outcome = await svc.incr_with_limit(req.key, delta=req.delta, limit=req.limit)
    except UnknownScriptError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ScriptLoadError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except StoreExecutionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return IncrResult.from_outcome(req.key, outcome)

def create_app(service: Optional[BoundedCounterService] = None) -> FastAPI:
    svc = service or BoundedCounterService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await svc.init()
        try:
            yield
        finally:
            await svc.quit()

    app = FastAPI(title="bounded-counter", lifespan=lifespan)
    app.dependency_overrides[get_service] = lambda: svc
    app.include_router(router)
    return app
