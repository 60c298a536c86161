"""
Factory d'application utilisée par les entrypoints (marketplace.app, marketplace.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional

from fastapi import FastAPI

from marketplace.config import CheckoutSettings, load_settings
from .lifespan import lifespan
from .middlewares import register_security_middleware
from .exception_handlers import register_exception_handlers
from .routers import register_routers

def create_app(settings: Optional[CheckoutSettings] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - CheckoutSettings (immuable) sur app.state.settings
      - middleware de sécurité, gestionnaires d'exceptions, routers
    Une configuration invalide (taux hors [0,1), mode inconnu) échoue ici, au démarrage.
    """
    app = FastAPI(title="Marketplace Checkout", lifespan=lifespan)
    app.state.settings = settings or load_settings()
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
