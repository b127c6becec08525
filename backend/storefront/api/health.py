import logging

from fastapi import APIRouter
from sqlalchemy import text

from storefront.db import engine

router = APIRouter()
log = logging.getLogger(__name__)


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        log.exception("health check: database unreachable")
    return {"status": "ok" if db_ok else "degraded", "db": db_ok}
