from fastapi import APIRouter
from creditledger.api.v1.endpoints import admin, credits, discounts, jobs, pricing, vendor

router = APIRouter()

router.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
router.include_router(credits.router, prefix="/credits", tags=["credits"])
router.include_router(discounts.router, prefix="/discount-codes", tags=["discount-codes"])
router.include_router(vendor.router, prefix="/vendor", tags=["vendor"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
