# rota/routes/health.py
"""
Health check endpoints with slot store and sync monitoring.
"""

import time

from fastapi import APIRouter, Request

from rota.infrastructure.observability.logging import log_health_check
from rota.services.reconciliation_service import SyncStatus

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "family-care-rota"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check covering the slot store and the live subscription.

    Offline mode is reported as not ready but still answers 200: the rota
    remains readable, it just cannot accept claims.
    """
    rota = request.app.state.rota
    settings = request.app.state.settings
    checks = {}
    overall_ok = True

    # 1) Slot store reachability
    t0 = time.time()
    try:
        store_ok = await rota.store.ping()
        latency_ms = round((time.time() - t0) * 1000, 1)
        checks["store"] = {
            "ok": bool(store_ok),
            "backend": rota.store.backend,
            "latency_ms": latency_ms,
        }
        log_health_check("slot_store", bool(store_ok), latency_ms)
        overall_ok = overall_ok and bool(store_ok)
    except Exception as e:
        checks["store"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        log_health_check("slot_store", False, round((time.time() - t0) * 1000, 1), error=str(e))
        overall_ok = False

    # 2) Live subscription
    sync_ok = rota.sync_status is SyncStatus.LIVE
    checks["sync"] = {
        "ok": sync_ok,
        "status": rota.sync_status.value,
        "snapshots_applied": rota.reconciler.version,
        "claimed_slots": len(rota.reconciler.claims),
    }
    if rota.reconciler.last_error:
        checks["sync"]["error"] = rota.reconciler.last_error
    overall_ok = overall_ok and sync_ok

    # 3) Configuration checks
    config_issues = []
    if rota.config.store_backend == "redis" and not rota.config.redis_url:
        config_issues.append("REDIS_URL not set")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues if config_issues else None,
        "environment": settings.environment,
        "app_id": rota.config.app_id,
        "collection": rota.config.collection_key,
    }
    overall_ok = overall_ok and not config_issues

    return {"overall_ok": overall_ok, "mode": rota.mode, "checks": checks, "timestamp": time.time()}
