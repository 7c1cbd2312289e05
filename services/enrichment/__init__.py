# Enrichment sync services
from services.enrichment.metrics_store import StoredMetrics, load_metrics, save_metrics
from services.enrichment.sync_service import ProfileEnrichmentSyncService

__all__ = [
    "StoredMetrics",
    "load_metrics",
    "save_metrics",
    "ProfileEnrichmentSyncService",
]
