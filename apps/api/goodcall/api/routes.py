from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from goodcall.audit.api import router as logs_router
from goodcall.auth.api import router as auth_router
from goodcall.catalog.api import companies_router, sale_statuses_router, technologies_router
from goodcall.core.auth import AuthUser
from goodcall.core.config import get_settings
from goodcall.core.rbac import Capability, require_capabilities
from goodcall.goals.api import router as goals_router
from goodcall.metrics import generate_metrics_payload, metrics_content_type
from goodcall.notifications.api import router as notifications_router
from goodcall.sales.api import router as sales_router
from goodcall.users.api import router as users_router

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(sales_router)
api_router.include_router(companies_router)
api_router.include_router(technologies_router)
api_router.include_router(sale_statuses_router)
api_router.include_router(goals_router)
api_router.include_router(notifications_router)
api_router.include_router(logs_router)

router = APIRouter()
router.include_router(api_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/metrics", tags=["system"])
def metrics(_: AuthUser = Depends(require_capabilities(Capability.METRICS_READ))) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
