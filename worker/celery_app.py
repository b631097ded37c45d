import logging
import os
from celery import Celery
from celery.signals import setup_logging

celery_app = Celery(
    "lscbridge",
    broker=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
    backend=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
)

@setup_logging.connect
def configure_logging(**kwargs):
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

@celery_app.task(name="run_lsc")
def run_lsc(payload: dict) -> dict:
    from lscbridge.models import RunRequest
    from lscbridge.services.orchestrator import LscOrchestrator
    from lscbridge.storage.store import RedisStore
    req = RunRequest(**payload)
    orchestrator = LscOrchestrator(RedisStore())
    outcome = orchestrator.run(
        req.scan_id,
        req.host_ip,
        req.hostname,
        req.os_release,
        req.package_list,
        timeout=req.timeout,
        cancel=orchestrator.abort_signal(req.scan_id),
    )
    return outcome.model_dump(mode="json")
