"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
La clé utilisée est celle de la plateforme Connect (STRIPE_CONNECT_SECRET_KEY).
"""
from typing import Any, Dict, Mapping, Optional

import stripe

from marketplace import config

# module marketplace.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_CONNECT_SECRET_KEY (repli: STRIPE_SECRET_KEY).
    - En absence de clé, les appels Stripe échoueront côté SDK (No API key provided).
    """
    if config.STRIPE_CONNECT_SECRET_KEY:
        stripe.api_key = config.STRIPE_CONNECT_SECRET_KEY
    return stripe

def to_plain(obj: Any) -> Dict[str, Any]:
    """StripeObject -> dict récursif (les dicts simples des tests passent tels quels)."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, Mapping):
        return {k: v for k, v in obj.items()}
    return dict(obj)

def create_session(params: Dict[str, Any], idempotency_key: Optional[str] = None) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - params: paramètres Checkout (line_items, mode, locale, payment_intent_data, metadata, ...)
    - idempotency_key: rejouer la même clé renvoie la même session côté Stripe
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    Lève stripe.StripeError en cas d'échec (traduit par le service).
    """
    require_stripe()
    options: Dict[str, Any] = {}
    if idempotency_key:
        options["idempotency_key"] = idempotency_key
    session = stripe.checkout.Session.create(**params, **options)
    return to_plain(session)

def parse_event(payload: bytes, sig_header: Optional[str], secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Valide un événement Stripe signé (webhook) et le retourne en dict.
    - Lève stripe.SignatureVerificationError si la signature est invalide
    - Lève ValueError si le payload n'est pas un JSON valide
    """
    event = stripe.Webhook.construct_event(payload, sig_header, secret or config.STRIPE_WEBHOOK_SECRET)
    return to_plain(event)
