from fastapi import APIRouter

from api.company.routes import router as company_router
from api.enrichment.routes import router as enrichment_router
from api.metrics.routes import router as metrics_router

api_router = APIRouter()

api_router.include_router(company_router, prefix="/companies", tags=["companies"])
api_router.include_router(enrichment_router, prefix="/companies", tags=["enrichments"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["metrics"])
