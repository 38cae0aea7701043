from fastapi import APIRouter, Depends
from leadform.api.auth import require_admin
import leadform.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/metrics")
def get_metrics(_=Depends(require_admin)):
    """Submission counts per tier and notifier delivery stats."""
    return metrics.get_metrics_snapshot()
