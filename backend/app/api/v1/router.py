from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.colors import router as colors_router
from backend.app.api.v1.endpoints.products import router as products_router
from backend.app.api.v1.endpoints.stock import router as stock_router
from backend.app.api.v1.endpoints.cart import router as cart_router
from backend.app.api.v1.endpoints.sale_requests import router as sale_requests_router
from backend.app.api.v1.endpoints.reports import router as reports_router
from backend.app.api.v1.endpoints.settings import router as settings_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(colors_router, tags=["colors"])
router.include_router(products_router, tags=["products"])
router.include_router(stock_router, tags=["stock"])
router.include_router(cart_router, tags=["cart"])
router.include_router(sale_requests_router, tags=["sale_requests"])
router.include_router(reports_router, tags=["reports"])
router.include_router(settings_router, tags=["settings"])
