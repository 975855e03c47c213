"""
API routers, mounted under the configured prefix by `backend.app`.
"""

from fastapi import APIRouter

from backend.routes import (
    activities,
    admin,
    ai,
    analytics,
    bundles,
    corporate_cards,
    flights,
    templates,
    trips,
    white_label,
)

router = APIRouter()
router.include_router(trips.router, prefix="/trips", tags=["trips"])
router.include_router(activities.router, prefix="/activities", tags=["activities"])
router.include_router(ai.router, prefix="/ai", tags=["ai"])
router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
router.include_router(templates.router, prefix="/templates", tags=["templates"])
router.include_router(bundles.router, prefix="/bundles", tags=["bundles"])
router.include_router(
    corporate_cards.router, prefix="/corporate-card", tags=["corporate-cards"]
)
router.include_router(
    corporate_cards.expenses_router, prefix="/expenses", tags=["expenses"]
)
router.include_router(
    corporate_cards.webhooks_router, prefix="/webhooks", tags=["webhooks"]
)
router.include_router(flights.router, prefix="/flights", tags=["flights"])
router.include_router(white_label.router, prefix="/white-label", tags=["white-label"])
router.include_router(
    white_label.organization_router, prefix="/organization", tags=["white-label"]
)
router.include_router(admin.router, prefix="/admin", tags=["admin"])
