from __future__ import annotations

from fastapi import HTTPException, Request

from offline_gateway.worker.state import WorkerState


def get_worker(request: Request) -> WorkerState:
    state = getattr(request.app.state, "worker", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Worker is not running.")
    return state
