from collections.abc import Callable
from contextlib import AbstractContextManager

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.session import session_scope
from storefront.observability import log_event, metrics_store
from storefront.schemas.ops import (
    DependencyStatus,
    HealthResponse,
    ReadinessDependency,
    ReadinessResponse,
)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness probe", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/ready",
    summary="Readiness probe",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
def readiness(response: Response) -> ReadinessResponse:
    dependencies = [
        ReadinessDependency(name="database", status=database_dependency_status(session_scope))
    ]
    metrics_store.increment("readiness_dependency_checked_total", len(dependencies))

    failed = [dep.name for dep in dependencies if dep.status != "ok"]
    if failed:
        metrics_store.increment("readiness_dependency_error_total", len(failed))
        log_event(f"readiness_check_failed:{','.join(failed)}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="degraded", dependencies=dependencies)
    return ReadinessResponse(status="ok", dependencies=dependencies)


def database_dependency_status(
    session_factory: Callable[[], AbstractContextManager[Session]],
) -> DependencyStatus:
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return "error"
    return "ok"
