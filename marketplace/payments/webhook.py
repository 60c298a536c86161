"""
Finalisation des commandes sur webhook Stripe.

  pending_orders{pending} --(checkout.session.completed vérifié)--> site_orders{paid}

La livraison Stripe est « au moins une fois ». En mode insert (défaut), un doublon
d'événement crée une seconde commande; FINALIZE_MODE=upsert crée seulement si absente.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import stripe

from marketplace.config import CheckoutSettings, STRIPE_WEBHOOK_SECRET

from . import metadata as meta
from . import repository
from . import stripe_client
from .errors import PersistenceError, SignatureError

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"

# module marketplace.payments.webhook
def verify_event(payload: bytes, sig_header: Optional[str], secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Vérifie la signature et retourne l'événement.
    Échec fermé: en-tête absent, secret non configuré, signature ou payload invalide -> SignatureError.
    """
    secret = secret if secret is not None else STRIPE_WEBHOOK_SECRET
    if not sig_header:
        raise SignatureError("Missing Stripe-Signature header")
    if not secret:
        logger.error("payments.webhook STRIPE_WEBHOOK_SECRET is not configured")
        raise SignatureError("Webhook secret not configured")
    try:
        return stripe_client.parse_event(payload, sig_header, secret)
    except stripe.SignatureVerificationError:
        raise SignatureError("Invalid Stripe signature")
    except ValueError:
        raise SignatureError("Invalid webhook payload")

def _address(details: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    addr = (details or {}).get("address")
    return dict(addr) if isinstance(addr, Mapping) else None

def _shipping_details(session: Mapping[str, Any]) -> Dict[str, Any]:
    # API récentes: collected_information.shipping_details; anciennes: shipping_details
    collected = session.get("collected_information") or {}
    details = collected.get("shipping_details") or session.get("shipping_details") or {}
    return {"name": details.get("name"), "address": _address(details)}

def resolve_items(session_id: str, metadata_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Articles de la commande: métadonnées de session si complètes, sinon pending_orders
    (lecture seule); à défaut, ce que portent les métadonnées.
    """
    if metadata_items and all("unit_amount" in it for it in metadata_items):
        return metadata_items
    pending = repository.get_pending_order(session_id)
    pending_items = (pending or {}).get("items") or []
    if pending_items:
        return list(pending_items)
    return metadata_items

def build_order(session: Mapping[str, Any]) -> Dict[str, Any]:
    """Ligne site_orders construite depuis la session Checkout complétée."""
    session_id = session.get("id")
    extracted = meta.extract_metadata_from_session(session)
    customer = session.get("customer_details") or {}
    return {
        "site_key": extracted["site_key"],
        "stripe_checkout_session_id": session_id,
        "amount": session.get("amount_total"),
        "currency": (session.get("currency") or "").lower() or None,
        "payment_status": session.get("payment_status"),
        "customer": {
            "email": customer.get("email"),
            "name": customer.get("name"),
            "phone": customer.get("phone"),
            "address": _address(customer),
        },
        "shipping": _shipping_details(session),
        "items": resolve_items(session_id, extracted["items"]),
        "transfer_group": extracted["transfer_group"],
        "seller_connect_id": extracted["seller_connect_id"],
        "settlement_style": extracted["settlement_style"],
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

def handle_event(event: Mapping[str, Any], settings: CheckoutSettings) -> Dict[str, Any]:
    """
    Traite un événement vérifié.
    - checkout.session.completed: crée la commande finale -> {"status": "ok"}
    - autre type: {"status": "ignored"} (pas de nouvelle livraison côté Stripe)
    Lève PersistenceError si l'écriture échoue (Stripe rejouera l'événement).
    """
    event_type = event.get("type")
    if event_type != COMPLETED_EVENT:
        logger.debug("payments.webhook ignored event type=%s", event_type)
        return {"status": "ignored"}

    session = (event.get("data") or {}).get("object") or {}
    order = build_order(session)
    logger.info(
        "payments.webhook finalize site_key=%s session_id=%s mode=%s",
        order["site_key"], order["stripe_checkout_session_id"], settings.finalize_mode,
    )
    if settings.finalize_mode == "upsert":
        ok = repository.upsert_order(order)
    else:
        ok = repository.insert_order(order)
    if not ok:
        raise PersistenceError("Could not record order")
    return {"status": "ok"}
