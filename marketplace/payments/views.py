import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from marketplace.config import CheckoutSettings, load_settings
from marketplace.payments import service as payments_service
from marketplace.payments import webhook as payments_webhook
from marketplace.settlement.strategies import DestinationCharge, SeparateChargesAndTransfers, SettlementStrategy
from marketplace.utils.origins import cors_headers, preflight_headers
from marketplace.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Checkout API"])

def get_settings(request: Request) -> CheckoutSettings:
    """CheckoutSettings construit au démarrage (app.state.settings); repli: chargement à la volée."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = load_settings()
        request.app.state.settings = settings
    return settings

async def _checkout(request: Request, settings: CheckoutSettings, strategy: SettlementStrategy) -> JSONResponse:
    origin: Optional[str] = request.headers.get("origin")
    body = await request.body()
    result = payments_service.create_checkout_session(body, origin=origin, settings=settings, strategy=strategy)
    return JSONResponse(result, headers=cors_headers(origin))

# module marketplace.payments.views
@router.post("/api/checkout/create", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def checkout_create(request: Request, settings: CheckoutSettings = Depends(get_settings)):
    """
    Ouvre une session Checkout en « separate charges & transfers » (transfer_group, commission au virement).
    - Entrée JSON: {"siteKey": "...", "items": [{"id": "...", "qty": 2}], "lang"?, "origin"?, "idempotencyKey"?}
    - Réponse: {"url": "<Stripe Checkout>"}
    - Erreurs: {"error": <raison>, "message": ...} (400/403/500), voir payments.errors
    """
    return await _checkout(request, settings, SeparateChargesAndTransfers())

@router.post("/api/checkout/connect", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def checkout_connect(request: Request, settings: CheckoutSettings = Depends(get_settings)):
    """Variante « destination charge »: commission prélevée au paiement, exige un onboarding terminé."""
    return await _checkout(request, settings, DestinationCharge())

@router.options("/api/checkout/create", include_in_schema=False)
@router.options("/api/checkout/connect", include_in_schema=False)
async def checkout_preflight(request: Request):
    return Response(status_code=204, headers=preflight_headers(request.headers.get("origin")))

@router.post("/api/stripe/webhook", include_in_schema=False)
async def stripe_webhook(request: Request, settings: CheckoutSettings = Depends(get_settings)):
    """
    Webhook Stripe: consomme checkout.session.completed pour créer la commande finale.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET (échec fermé -> 400)
    - Réponses: {"status": "ok"} ou {"status": "ignored"}; 500 si l'écriture échoue
    """
    payload = await request.body()
    event = payments_webhook.verify_event(payload, request.headers.get("stripe-signature"))
    return JSONResponse(payments_webhook.handle_event(event, settings))
