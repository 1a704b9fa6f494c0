import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.deps import get_settings, get_user_store
from api.errors import InfrastructureError
from config.settings import AppSettings
from persistence.users import StoreError, UserStore

logger = logging.getLogger("udyam")

router = APIRouter(tags=["health"])


@router.get("/")
def root():
    return {"message": "Welcome to 0penBiz API"}


@router.get("/api/health")
def health(settings: AppSettings = Depends(get_settings)):
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "port": settings.port,
        "database": "PostgreSQL",
    }


@router.get("/api/db-test")
def db_test(store: UserStore = Depends(get_user_store)):
    """Round-trip to the database."""
    try:
        current_time = store.now()
    except StoreError as exc:
        logger.error("db_test.failed", extra={"error_message": str(exc)})
        raise InfrastructureError("Database connection failed") from exc
    return {
        "message": "Database connection successful",
        "timestamp": current_time.isoformat(),
    }
