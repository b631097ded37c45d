import logging
from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, Query
from ..auth import require_token
from ..errors import EncodingError, StoreUnavailable
from ..models import LscOutcome, RunRequest, TaskResponse
from ..services.orchestrator import LscOrchestrator
from ..storage.store import RedisStore
from worker.celery_app import celery_app, run_lsc as run_lsc_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lsc")
store = RedisStore()

def get_orchestrator() -> LscOrchestrator:
    return LscOrchestrator(store)

# Plain `def` endpoints: polling blocks, so FastAPI runs them in its threadpool.

@router.post("/run", response_model=LscOutcome)
def run_lsc(payload: RunRequest, orchestrator: LscOrchestrator = Depends(get_orchestrator), _=Depends(require_token)):
    try:
        return orchestrator.run(
            payload.scan_id,
            payload.host_ip,
            payload.hostname,
            payload.os_release,
            payload.package_list,
            timeout=payload.timeout,
            cancel=orchestrator.abort_signal(payload.scan_id),
        )
    except EncodingError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except StoreUnavailable as exc:
        logger.error("Store unavailable while running %s/%s: %s", payload.scan_id, payload.host_ip, exc)
        raise HTTPException(status_code=503, detail="Store unavailable")

@router.get("/status", response_model=LscOutcome)
def get_status(
    scan_id: str = Query(..., min_length=1),
    host_ip: str = Query(..., min_length=1),
    namespace: str | None = None,
    timeout: float = Query(0, ge=0),
    orchestrator: LscOrchestrator = Depends(get_orchestrator),
    _=Depends(require_token),
):
    return orchestrator.status_check(
        scan_id, host_ip, namespace=namespace, timeout=timeout,
        cancel=orchestrator.abort_signal(scan_id, namespace),
    )

@router.post("/abort", status_code=204)
def abort_scan(
    scan_id: str = Query(..., min_length=1),
    orchestrator: LscOrchestrator = Depends(get_orchestrator),
    _=Depends(require_token),
):
    try:
        orchestrator.abort_scan(scan_id)
    except StoreUnavailable as exc:
        logger.error("Store unavailable while aborting %s: %s", scan_id, exc)
        raise HTTPException(status_code=503, detail="Store unavailable")

@router.post("/enqueue", response_model=TaskResponse)
async def enqueue_lsc(payload: RunRequest, _=Depends(require_token)):
    async_result = run_lsc_task.delay(payload.model_dump())
    logger.info("Enqueued LSC for %s/%s as %s", payload.scan_id, payload.host_ip, async_result.id)
    return TaskResponse(taskid=async_result.id)

@router.get("/result", response_model=LscOutcome)
def get_result(task_id: str = Query(..., alias="task_id"), _=Depends(require_token)):
    ar = AsyncResult(task_id, app=celery_app)
    if ar.failed():
        raise HTTPException(status_code=500, detail=f"Task failed: {ar.result}")
    if not ar.successful():
        raise HTTPException(status_code=409, detail=f"Task status is {ar.state}")
    return LscOutcome(**ar.result)
