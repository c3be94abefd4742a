from fastapi import APIRouter

from sanad.api.routers import admin_claims, admin_settings, ai_agent, analytics, claims, eligibility, verification

api_router = APIRouter()

# Public claimant routes first so /claims/track and /claims/history resolve before /claims/{claim_id}
api_router.include_router(claims.router)
api_router.include_router(eligibility.router)

# Staff routes
api_router.include_router(admin_claims.router)
api_router.include_router(verification.router)
api_router.include_router(ai_agent.router)
api_router.include_router(admin_settings.router)
api_router.include_router(analytics.router)
