import logging

from fastapi import FastAPI

from load_hunter.core.config import configure_logging, settings
from load_hunter.database import check_database_connection
from load_hunter.routes.ingest import router as ingest_router
from load_hunter.routes.load_hunter import router as load_hunter_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="load-hunter-api")
app.include_router(ingest_router)
app.include_router(load_hunter_router)


@app.get("/health")
def health() -> dict[str, str]:
    database = "connected"
    status_value = "healthy"
    try:
        check_database_connection()
    except Exception:
        logger.exception("health: database check failed")
        database = "disconnected"
        status_value = "degraded"

    return {
        "status": status_value,
        "database": database,
        "environment": settings.ENV,
        "matching": "enabled" if settings.MATCHING_ENABLED else "disabled",
    }
