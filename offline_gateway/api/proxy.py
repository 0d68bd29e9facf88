from fastapi import APIRouter, Depends, Request, Response

from offline_gateway.api.deps import get_worker
from offline_gateway.worker.events import FetchEvent, dispatch
from offline_gateway.worker.state import WorkerState
from offline_gateway.worker.types import WorkerRequest

router = APIRouter()

_PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
_DROP_REQUEST_HEADERS = {"host", "content-length"}
_DROP_RESPONSE_HEADERS = {"content-length"}


@router.api_route("/{path:path}", methods=_PROXY_METHODS, include_in_schema=False)
async def intercept(path: str, request: Request, worker: WorkerState = Depends(get_worker)):
    url = f"{worker.network.origin}/{path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"

    worker_request = WorkerRequest(
        url=url,
        method=request.method,
        headers={k: v for k, v in request.headers.items() if k.lower() not in _DROP_REQUEST_HEADERS},
        body=await request.body(),
    )
    response = await dispatch(worker, FetchEvent(request=worker_request))
    return Response(
        content=response.body,
        status_code=response.status,
        headers={k: v for k, v in response.headers.items() if k not in _DROP_RESPONSE_HEADERS},
    )
