"""
Erreurs métier du tunnel de paiement.
Toutes dérivent de CheckoutError (une HTTPException FastAPI) et portent:
- status_code: code HTTP
- reason: code court lisible par machine (ex: "forbidden_origin")
- message: texte libre optionnel
Le rendu JSON {"error": reason, "message": message} est fait par app_setup.exception_handlers.
"""
from typing import Optional

from fastapi import HTTPException

# module marketplace.payments.errors
class CheckoutError(HTTPException):
    status_code_default = 400
    reason_default = "error"

    def __init__(self, status_code: Optional[int] = None, reason: Optional[str] = None, message: Optional[str] = None):
        self.reason = reason or self.reason_default
        self.message = message
        super().__init__(status_code=status_code or self.status_code_default, detail=message or self.reason)


class ValidationError(CheckoutError):
    reason_default = "bad_request"

    def __init__(self, reason: str = "bad_request", message: Optional[str] = None):
        super().__init__(400, reason, message)


class AuthorizationError(CheckoutError):
    """403 (origine refusée, ventes suspendues) ou 400 (compte Connect absent/incomplet)."""
    status_code_default = 403
    reason_default = "forbidden_origin"


class NotPurchasableError(CheckoutError):
    def __init__(self, message: Optional[str] = "No purchasable items"):
        super().__init__(400, "no_purchasable_items", message)


class UpstreamGatewayError(CheckoutError):
    def __init__(self, message: Optional[str] = None):
        super().__init__(500, "gateway_error", message)


class SignatureError(CheckoutError):
    def __init__(self, message: Optional[str] = "Invalid Stripe signature"):
        super().__init__(400, "invalid_signature", message)


class PersistenceError(CheckoutError):
    def __init__(self, message: Optional[str] = None):
        super().__init__(500, "persistence_error", message)
