"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Auth is applied at the include_router level where a whole router shares
one privilege. Routers that mix open and protected routes (landing pages)
or need the caller's identity attach the gate per handler instead.
"""

from fastapi import APIRouter, Depends

from alera.api.admin import router as admin_router
from alera.api.auth import router as auth_router
from alera.api.fanzone import router as fanzone_router
from alera.api.health import router as health_router
from alera.api.landing_pages import router as landing_pages_router
from alera.api.notifications import router as notifications_router
from alera.api.profile import router as profile_router
from alera.api.public import router as public_router
from alera.api.subscription import router as subscription_router
from alera.api.subscription import stripe_router
from alera.api.wallet import router as wallet_router
from alera.auth.dependencies import admin_only, authenticated, current_user

api_router = APIRouter(prefix="/api")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(public_router, tags=["public"])
api_router.include_router(landing_pages_router, tags=["landing-pages"])

# Mixed: pricing and the Stripe webhook are open, the rest gate per handler
api_router.include_router(subscription_router, tags=["subscription"])
api_router.include_router(stripe_router, tags=["stripe"])

# Protected routes
api_router.include_router(
    profile_router, tags=["profile"], dependencies=[Depends(current_user)]
)
api_router.include_router(
    wallet_router, tags=["wallet"], dependencies=[Depends(current_user)]
)
api_router.include_router(
    fanzone_router, tags=["fanzone"], dependencies=[Depends(authenticated)]
)
api_router.include_router(
    notifications_router,
    tags=["notifications"],
    dependencies=[Depends(authenticated)],
)
api_router.include_router(
    admin_router, tags=["admin"], dependencies=[Depends(admin_only)]
)
