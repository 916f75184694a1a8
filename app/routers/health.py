"""
Health Check Router
Reports API status and whether the expense store answers
"""
import logging

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.errors import StoreError
from app.db.repository import get_expense_store
from app.utils.dates import format_timestamp, utcnow

router = APIRouter()
logger = logging.getLogger(__name__)

HEALTH_PROBE_USER_ID = "__health__"


@router.get("/health")
def health_check(store=Depends(get_expense_store)):
    """
    Health check endpoint.
    Probes the store with an owner-scoped count against a reserved owner id.
    """
    store_status = {"backend": settings.STORE_BACKEND, "connected": False, "error": None}
    try:
        store.count(HEALTH_PROBE_USER_ID)
        store_status["connected"] = True
    except StoreError as e:
        store_status["error"] = e.cause or e.message
        logger.error(f"Expense store check failed: {store_status['error']}")

    return {
        "status": "healthy" if store_status["connected"] else "degraded",
        "service": settings.PROJECT_NAME,
        "store": store_status,
        "timestamp": format_timestamp(utcnow()),
    }
