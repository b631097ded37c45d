import logging
from fastapi import FastAPI
from .config import settings
from .routers import lsc

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="LSC Bridge API", version="1.0.0")
app.include_router(lsc.router)
