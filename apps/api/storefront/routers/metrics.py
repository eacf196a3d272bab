from fastapi import APIRouter, Depends

from storefront.auth.dependencies import AuthContext, require_admin
from storefront.dependencies import get_tracking_notifier
from storefront.observability import metrics_store
from storefront.schemas.ops import LiveTrackingStats, MetricsResponse, TimingMetricStats
from storefront.services.tracking_notifier import TrackingNotifier

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get(
    "",
    summary="Storefront counters and live tracking gauges",
    response_model=MetricsResponse,
)
def metrics_endpoint(
    notifier: TrackingNotifier = Depends(get_tracking_notifier),
    _auth: AuthContext = Depends(require_admin),
) -> MetricsResponse:
    """Counters and timings for the admin dashboard; requires the ADMIN role."""
    snapshot = metrics_store.snapshot()

    return MetricsResponse(
        counters=snapshot.counters,
        timings={
            name: TimingMetricStats.model_validate(stats)
            for name, stats in snapshot.timings.items()
        },
        live_tracking=LiveTrackingStats(
            channels=notifier.channel_count(),
            connections=notifier.connection_count(),
        ),
    )
