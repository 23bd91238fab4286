from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.products import router as products_router
from backend.app.api.v1.endpoints.locations import router as locations_router
from backend.app.api.v1.endpoints.stock import router as stock_router
from backend.app.api.v1.endpoints.pricing import router as pricing_router
from backend.app.api.v1.endpoints.resellers import router as resellers_router
from backend.app.api.v1.endpoints.reseller_orders import router as reseller_orders_router
from backend.app.api.v1.endpoints.transfer_orders import router as transfer_orders_router
from backend.app.api.v1.endpoints.admin import router as admin_router
from backend.app.api.v1.endpoints.send_email import router as send_email_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(products_router, tags=["products"])
router.include_router(locations_router, tags=["locations"])
router.include_router(stock_router, tags=["stock"])
router.include_router(pricing_router, tags=["pricing"])
router.include_router(resellers_router, tags=["resellers"])
router.include_router(reseller_orders_router, tags=["reseller_orders"])
router.include_router(transfer_orders_router, tags=["transfer_orders"])
router.include_router(admin_router, tags=["admin"])
router.include_router(send_email_router, tags=["email"])
