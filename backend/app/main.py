import logging

from fastapi import FastAPI

from backend.app.api.v1.router import router as v1_router
from backend.app.core.config import settings
from backend.app.core.logging import setup_logging
from backend.app.db.models.models_v1 import SaleRequest
from backend.services.change_feed import subscribe

setup_logging(settings.log_level)
logger = logging.getLogger("backend.app")


def _notify_sale_requests(changes: list[tuple[str, str]]) -> None:
    for action, sale_request_id in changes:
        if action == "created":
            logger.info("New sale request %s", sale_request_id)


subscribe(SaleRequest, _notify_sale_requests)

app = FastAPI(title="Têca Estoque", version="0.1.0")
app.include_router(v1_router, prefix="/v1")
