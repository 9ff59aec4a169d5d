# intake/routers/health.py
"""
Health check: database, photo bucket, and the service-order system.
"degraded" means the API answers but a dependency does not.
"""

import os
import time
from datetime import datetime

import requests
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from intake.config import settings
from intake.database import get_db

router = APIRouter()


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 1)


def check_database(db: Session) -> dict:
    start = time.time()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        return {"status": "error", "error": str(e)}
    return {"status": "ok", "latency_ms": _elapsed_ms(start)}


def check_photo_bucket() -> dict:
    path = settings.PHOTO_STORAGE_DIR
    if not os.path.isdir(path):
        return {"status": "missing", "path": path}
    if not os.access(path, os.W_OK):
        return {"status": "read_only", "path": path}
    return {"status": "ok", "path": path}


def check_service_orders() -> dict:
    if not settings.service_orders_enabled:
        return {"status": "disabled"}
    start = time.time()
    try:
        resp = requests.get(
            f"{settings.SERVICE_ORDER_URL.rstrip('/')}/rest/v1/service_orders",
            params={"select": "id", "limit": 1},
            headers={"apikey": settings.SERVICE_ORDER_API_KEY,
                     "Authorization": f"Bearer {settings.SERVICE_ORDER_API_KEY}"},
            timeout=3,
        )
    except requests.exceptions.ConnectionError:
        return {"status": "unreachable"}
    except requests.exceptions.RequestException as e:
        return {"status": "error", "error": str(e)}
    if resp.status_code != 200:
        return {"status": f"http_{resp.status_code}"}
    return {"status": "ok", "latency_ms": _elapsed_ms(start),
            "variant": settings.SERVICE_ORDER_STATUS_VARIANT}


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    checks = {
        "database": check_database(db),
        "photo_bucket": check_photo_bucket(),
        "service_orders": check_service_orders(),
    }
    healthy = all(c["status"] in ("ok", "disabled") for c in checks.values())
    return {
        "status": "ok" if healthy else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }
