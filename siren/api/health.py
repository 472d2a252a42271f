"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from siren.core.metrics import health_ready_checks_total
from siren.domain.timers import SchedulerTimerService

router = APIRouter()


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Health check endpoint used as the liveness check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(request: Request) -> dict[str, Any]:
    """Health check endpoint used as the readiness check."""
    errors = []

    # Check the engine is wired up
    if getattr(request.app.state, "engine", None) is None:
        errors.append("engine_unavailable")
        health_ready_checks_total.labels(result="fail", reason="engine").inc()
    else:
        health_ready_checks_total.labels(result="ok", reason="engine").inc()

    # Check scheduler health
    if request.app.state.settings.scheduler_enabled:
        if not _check_scheduler(request.app.state.timers):
            errors.append("scheduler_unhealthy")
            health_ready_checks_total.labels(result="fail", reason="scheduler").inc()
        else:
            health_ready_checks_total.labels(result="ok", reason="scheduler").inc()

    if errors:
        raise HTTPException(status_code=503, detail={"status": "unready", "errors": errors})

    return {"status": "ready"}


def _check_scheduler(timers: Any) -> bool:
    """Check the countdown scheduler is running and its jobstore answers."""
    if not isinstance(timers, SchedulerTimerService) or not timers.running:
        return False
    timers.scheduler.get_jobs()
    return True
