"""API v1 routers."""

from fastapi import APIRouter

from .certificates import router as certificates_router
from .fraud import router as fraud_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(certificates_router)
router.include_router(fraud_router)

__all__ = ["router", "certificates_router", "fraud_router"]
