from fastapi import APIRouter, Depends

from offline_gateway.api.deps import get_worker
from offline_gateway.worker.state import WorkerState

router = APIRouter()

@router.get("/health", summary="Health Check", description="Check the health status of the gateway and its worker.")
async def health_check(worker: WorkerState = Depends(get_worker)):
    return {
        "status": "healthy",
        "version": worker.settings.sw_version,
        "phase": worker.phase.value,
        "cacheNames": worker.registry.keys(),
    }
