"""
Module 'payments' (feature-first): point d'entrée public.
Réunit erreurs métier, schémas, metadata Stripe, client Stripe, repository BD, service et webhook.
"""

from .errors import (
    CheckoutError,
    ValidationError,
    AuthorizationError,
    NotPurchasableError,
    UpstreamGatewayError,
    SignatureError,
    PersistenceError,
)
from .service import create_checkout_session
from .webhook import verify_event, handle_event

__all__ = [
    # errors
    "CheckoutError",
    "ValidationError",
    "AuthorizationError",
    "NotPurchasableError",
    "UpstreamGatewayError",
    "SignatureError",
    "PersistenceError",
    # services
    "create_checkout_session",
    "verify_event",
    "handle_event",
]
