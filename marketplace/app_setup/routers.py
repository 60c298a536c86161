"""
Registre central des routers.
- API: checkout (create / connect), webhook Stripe
- Health: /health, /health/supabase, /health/rate-limit
"""
from fastapi import FastAPI

from marketplace.payments import views as payments_views
from marketplace.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(health_router)
