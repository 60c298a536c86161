"""
Cas d'usage 'payments': ouverture d'une session Stripe Checkout pour le panier d'un site.
Orchestre catalog, pricing, shipping, settlement, stripe_client et repository, dans cet ordre:

  1) origine  2) corps  3) compte vendeur  4) langue/locale  5) produits + lignes
  6) rien d'achetable -> 400  7) expédition  8) commission + transfer_group
  9) session Stripe  10) pending_orders (avant de répondre)  11) {"url": ...}

Aucune étape n'est rejouée: une erreur est levée au plus près de sa cause.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pydantic
import stripe

from marketplace.catalog import repository as catalog_repository
from marketplace.config import CheckoutSettings
from marketplace.i18n.locale import checkout_locale, resolve_lang, settlement_currency
from marketplace.i18n.localization import localized_names_meta
from marketplace.pricing import cart as pricing
from marketplace.settlement.fees import idempotent_transfer_group, new_transfer_group, platform_fee
from marketplace.settlement.strategies import SettlementStrategy
from marketplace.shipping import service as shipping_service
from marketplace.utils.origins import is_allowed_origin

from . import metadata as meta
from . import repository
from . import stripe_client
from .errors import (
    AuthorizationError,
    NotPurchasableError,
    PersistenceError,
    UpstreamGatewayError,
    ValidationError,
)
from .schemas import CheckoutRequest

logger = logging.getLogger(__name__)

# module marketplace.payments.service
def parse_request(body: Any) -> CheckoutRequest:
    """
    Corps brut (bytes/str) ou déjà décodé -> CheckoutRequest.
    - JSON invalide: ValidationError("invalid_json")
    - Schéma invalide (siteKey vide, items vide, id manquant): ValidationError("bad_request")
    """
    if isinstance(body, (bytes, bytearray, str)):
        try:
            body = json.loads(body or b"")
        except ValueError:
            raise ValidationError("invalid_json", "Invalid JSON")
    if not isinstance(body, dict):
        raise ValidationError("bad_request", "Bad request")
    try:
        return CheckoutRequest.model_validate(body)
    except pydantic.ValidationError as e:
        raise ValidationError("bad_request", f"Bad request: {e.error_count()} invalid field(s)")

def redirect_base(body_origin: Optional[str], origin: Optional[str], settings: CheckoutSettings) -> str:
    """Origine du corps si autorisée, sinon en-tête Origin, sinon PUBLIC_ORIGIN."""
    if body_origin:
        if is_allowed_origin(body_origin, settings.origin_patterns()):
            return body_origin.rstrip("/")
        logger.warning("payments.service ignoring disallowed body origin=%s", body_origin)
    return (origin or settings.public_origin or "").rstrip("/")

def _line_items(
    lines: List[pricing.QuoteLine],
    products: Mapping[str, Mapping[str, Any]],
    *,
    site_key: str,
    lang: str,
    currency: str,
    settings: CheckoutSettings,
) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for line in lines:
        names = localized_names_meta(line.name, pricing.product_base(products[line.id]), lang, settings.source_lang)
        items.append({
            "quantity": line.quantity,
            "price_data": {
                "currency": currency,
                "unit_amount": line.unit_amount,
                "product_data": {
                    "name": line.name,
                    "metadata": {
                        "product_id": line.id,
                        "site_key": site_key,
                        "base_amount": str(line.unit_amount),
                        **names,
                    },
                },
            },
        })
    return items

def _shipping_line_item(fee: int, currency: str, settings: CheckoutSettings) -> Dict[str, Any]:
    return {
        "quantity": 1,
        "price_data": {
            "currency": currency,
            "unit_amount": fee,
            "product_data": {"name": settings.shipping_line_name},
        },
    }

def create_checkout_session(
    body: Any,
    *,
    origin: Optional[str],
    settings: CheckoutSettings,
    strategy: SettlementStrategy,
) -> Dict[str, Any]:
    """
    Ouvre une session Checkout et enregistre la commande en attente.
    Retour: {"url": <url Stripe>}
    Lève une CheckoutError (voir payments.errors) à la première étape en échec.
    """
    # 1) origine
    if not is_allowed_origin(origin, settings.origin_patterns()):
        raise AuthorizationError(403, "forbidden_origin", "Forbidden origin")

    # 2) corps
    req = parse_request(body)
    site_key = req.siteKey
    logger.info("payments.service checkout start site_key=%s style=%s items=%s", site_key, strategy.style, len(req.items))

    # 3) compte vendeur
    merchant = catalog_repository.get_merchant(site_key)
    if merchant is not None and merchant.ec_stop:
        raise AuthorizationError(403, "ec_stopped", "Sales are suspended for this shop")
    if merchant is None or not merchant.has_valid_connect_account:
        raise AuthorizationError(400, "connect_account_missing", "Connect account missing")
    strategy.check_merchant(merchant)

    # 4) langue canonique + locale d'affichage Checkout
    lang = resolve_lang(req.lang or settings.default_lang, settings.default_lang, settings.lang_aliases)
    locale = checkout_locale(lang, settings.checkout_locales, settings.checkout_locale_overrides)
    currency = settlement_currency(settings)

    # 5) produits (par lots) + lignes de devis
    quantities = pricing.aggregate_quantities(
        [item.model_dump() for item in req.items], settings.min_quantity, settings.max_quantity
    )
    try:
        products = catalog_repository.fetch_products_chunked(site_key, quantities.keys(), settings.product_chunk_size)
    except catalog_repository.CatalogReadError:
        raise PersistenceError("Could not load products")
    lines = pricing.build_quote_lines(
        products, quantities, lang, settings.source_lang, settings.placeholder_name, settings.lang_aliases
    )

    # 6) rien d'achetable
    if not lines:
        raise NotPurchasableError()
    subtotal = pricing.subtotal(lines)

    # 7) expédition
    shipping = shipping_service.quote_shipping(site_key, lang, subtotal, settings.shipping_fallback_langs)
    line_items = _line_items(lines, products, site_key=site_key, lang=lang, currency=currency, settings=settings)
    if shipping.fee != 0:
        line_items.append(_shipping_line_item(shipping.fee, currency, settings))
    grand_total = subtotal + shipping.fee

    # 8) commission + style de règlement
    fee_rate = strategy.fee_rate(settings)
    application_fee = platform_fee(subtotal, fee_rate)
    # même clé client -> mêmes paramètres Stripe (rejeu idempotent)
    if req.idempotencyKey:
        transfer_group = idempotent_transfer_group(site_key, req.idempotencyKey)
    else:
        transfer_group = new_transfer_group(site_key)
    seller_connect_id = merchant.stripe_connect_account_id or ""

    # 9) session Stripe
    items_payload = [line.model_dump() for line in lines]
    base = redirect_base(req.origin, origin, settings)
    params: Dict[str, Any] = {
        "mode": "payment",
        "line_items": line_items,
        "locale": locale,
        "allow_promotion_codes": True,
        "customer_creation": "always",
        "phone_number_collection": {"enabled": True},
        "billing_address_collection": "required",
        "shipping_address_collection": {"allowed_countries": list(settings.shipping_allowed_countries)},
        "payment_intent_data": strategy.payment_intent_data(
            transfer_group=transfer_group,
            application_fee=application_fee,
            destination=seller_connect_id,
        ),
        "metadata": meta.build_session_metadata(
            site_key=site_key,
            ui_lang=req.lang,
            lang=lang,
            currency=currency,
            fee_rate=fee_rate,
            transfer_group=transfer_group,
            seller_connect_id=seller_connect_id,
            settlement_style=strategy.style,
            shipping_fee=shipping.fee,
            grand_total=grand_total,
            free_shipping_enabled=shipping.enabled,
            free_shipping_threshold=shipping.threshold,
            free_shipping_applied=shipping.free_applied,
            items=items_payload,
        ),
        "client_reference_id": site_key,
        "success_url": f"{base}/cart?session_id={{CHECKOUT_SESSION_ID}}&status=success",
        "cancel_url": f"{base}/cart",
    }
    idempotency_key = f"checkout:{site_key}:{req.idempotencyKey}" if req.idempotencyKey else None
    try:
        session = stripe_client.create_session(params, idempotency_key=idempotency_key)
    except stripe.StripeError as e:
        logger.exception("payments.service stripe session create failed site_key=%s", site_key)
        raise UpstreamGatewayError(getattr(e, "user_message", None) or str(e) or "Stripe error")

    session_id = session.get("id")
    url = session.get("url")

    # 10) commande en attente, avant de répondre
    pending = {
        "session_id": session_id,
        "site_key": site_key,
        "status": "pending",
        "items": items_payload,
        "subtotal": subtotal,
        "shipping_fee": shipping.fee,
        "grand_total": grand_total,
        "application_fee": application_fee,
        "fee_rate": fee_rate,
        "currency": currency,
        "ui_lang": req.lang or settings.default_lang,
        "lang": lang,
        "locale": locale,
        "settlement_style": strategy.style,
        "transfer_group": transfer_group,
        "seller_connect_id": seller_connect_id,
        "free_shipping": {
            "enabled": shipping.enabled,
            "threshold": shipping.threshold,
            "applied": shipping.free_applied,
        },
        "checkout_url": url,
        "idempotency_key": idempotency_key,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    if not repository.save_pending_order(pending):
        # session Stripe ouverte sans trace locale (pas de réconciliation automatique)
        logger.error("payments.service orphaned checkout session session_id=%s site_key=%s", session_id, site_key)
        raise PersistenceError("Could not record pending order")

    logger.info(
        "payments.service checkout ok site_key=%s session_id=%s subtotal=%s shipping=%s fee=%s",
        site_key, session_id, subtotal, shipping.fee, application_fee,
    )
    # 11)
    return {"url": url}
