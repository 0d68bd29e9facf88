import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from offline_gateway.api.deps import get_worker
from offline_gateway.core.rate_limit import rate_limit
from offline_gateway.core.security import require_api_key
from offline_gateway.schemas.worker import (
    ClientRegistrationRequest,
    MessageRequest,
    NotificationClickRequest,
    QueueMessageRequest,
    SyncTriggerRequest,
)
from offline_gateway.worker.events import (
    ActivateEvent,
    BeforeInstallPromptEvent,
    InstallEvent,
    MessageEvent,
    NotificationClickEvent,
    PeriodicSyncEvent,
    PushEvent,
    SyncEvent,
    dispatch,
)
from offline_gateway.worker.state import WorkerState

router = APIRouter(prefix="/sw", dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


@router.post("/install")
@rate_limit()
async def install_worker(request: Request, worker: WorkerState = Depends(get_worker)):
    _ = request
    installed = await dispatch(worker, InstallEvent())
    if not installed:
        raise HTTPException(status_code=503, detail="Precache failed; the previous version keeps serving.")
    deleted: list[str] = []
    if worker.skip_waiting:
        deleted = await dispatch(worker, ActivateEvent())
    return {"installed": True, "phase": worker.phase.value, "deleted": deleted}


@router.post("/activate")
@rate_limit()
async def activate_worker(request: Request, worker: WorkerState = Depends(get_worker)):
    _ = request
    deleted = await dispatch(worker, ActivateEvent())
    return {"phase": worker.phase.value, "deleted": deleted, "cacheNames": worker.registry.keys()}


@router.post("/message")
@rate_limit()
async def post_message(request: Request, payload: MessageRequest, worker: WorkerState = Depends(get_worker)):
    _ = request
    reply = await dispatch(worker, MessageEvent(data=payload.model_dump(exclude_none=True)))
    return {"reply": reply}


@router.post("/sync")
@rate_limit()
async def trigger_sync(request: Request, payload: SyncTriggerRequest, worker: WorkerState = Depends(get_worker)):
    _ = request
    report = await dispatch(worker, SyncEvent(tag=payload.tag))
    return {"tag": payload.tag, "report": report.to_dict() if report is not None else None}


@router.post("/sync/queue", status_code=202)
@rate_limit()
async def queue_message(request: Request, payload: QueueMessageRequest, worker: WorkerState = Depends(get_worker)):
    _ = request
    item = worker.sync_store.enqueue(
        payload.payload,
        tag=payload.tag or worker.settings.sync_tag,
        endpoint=worker.settings.chat_sync_endpoint,
    )
    return item.to_dict()


@router.get("/sync/items")
async def list_sync_items(worker: WorkerState = Depends(get_worker)):
    return {"items": [item.to_dict() for item in worker.sync_store.all()]}


@router.post("/periodic-sync")
@rate_limit()
async def trigger_periodic_sync(
    request: Request, payload: SyncTriggerRequest, worker: WorkerState = Depends(get_worker)
):
    _ = request
    notification = await dispatch(worker, PeriodicSyncEvent(tag=payload.tag))
    return {"tag": payload.tag, "notification": notification.to_dict() if notification is not None else None}


@router.post("/push")
@rate_limit()
async def receive_push(request: Request, worker: WorkerState = Depends(get_worker)):
    body = await request.body()
    notification = await dispatch(worker, PushEvent(data=body or None))
    if notification is None:
        raise HTTPException(status_code=500, detail="Notification could not be shown.")
    return notification.to_dict()


@router.get("/notifications")
async def list_notifications(worker: WorkerState = Depends(get_worker)):
    return {"notifications": [n.to_dict() for n in worker.notifications.list()]}


@router.post("/notifications/{notification_id}/click")
@rate_limit()
async def click_notification(
    request: Request,
    notification_id: str,
    payload: NotificationClickRequest,
    worker: WorkerState = Depends(get_worker),
):
    _ = request
    if worker.notifications.get(notification_id) is None:
        raise HTTPException(status_code=404, detail="Notification not found.")
    client = await dispatch(worker, NotificationClickEvent(notification_id=notification_id, action=payload.action))
    return {"client": client.to_dict() if client is not None else None}


@router.post("/clients", status_code=201)
@rate_limit()
async def register_client(
    request: Request, payload: ClientRegistrationRequest, worker: WorkerState = Depends(get_worker)
):
    _ = request
    client = worker.clients.register(worker.network.resolve(payload.url))
    if worker.intercepting:
        client.controlled = True
    return client.to_dict()


@router.get("/clients/{client_id}/messages")
async def drain_client_messages(client_id: str, worker: WorkerState = Depends(get_worker)):
    if worker.clients.get(client_id) is None:
        raise HTTPException(status_code=404, detail="Client not found.")
    return {"messages": worker.clients.drain_messages(client_id)}


@router.post("/install-prompt")
@rate_limit()
async def before_install_prompt(request: Request, worker: WorkerState = Depends(get_worker)):
    _ = request
    notified = await dispatch(worker, BeforeInstallPromptEvent())
    logger.info("sw_install_prompt_deferred clients=%d", notified)
    return {"deferred": worker.deferred_prompt, "clients": notified}
