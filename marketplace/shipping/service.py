"""
Résolution des frais d'expédition et de la livraison gratuite.

Deux tables indépendantes, chacune résolue site -> 'default'. Dans la table choisie,
la clé retenue est la première PRÉSENTE parmi [code exact, langue de base, "en", "ja"]:
une valeur 0 présente est une réponse finale (pas de repli vers le candidat suivant).
"""
import logging
import math
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel

from marketplace.shipping import repository
from marketplace.utils.lookup import candidate_keys, first_present

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_LANGS = ("en", "ja")

class ShippingQuote(BaseModel):
    fee: int
    base_fee: int
    fee_key: Optional[str] = None
    enabled: bool = False
    threshold: int = 0
    threshold_key: Optional[str] = None
    free_applied: bool = False

def _non_negative_int(value: Any, field: str) -> int:
    try:
        n = float(value)
    except (TypeError, ValueError):
        logger.warning("shipping.service invalid %s value=%r, using 0", field, value)
        return 0
    if not math.isfinite(n) or n < 0:
        logger.warning("shipping.service invalid %s value=%r, using 0", field, value)
        return 0
    return math.floor(n)

# module marketplace.shipping.service
def resolve_fee(prices_doc: Optional[Mapping[str, Any]], lang: str, fallback: Sequence[str] = DEFAULT_FALLBACK_LANGS):
    """(frais, clé retenue); aucune clé présente -> (0, None): gratuit, pas 'non configuré'."""
    table = (prices_doc or {}).get("prices")
    found = first_present(table, candidate_keys(lang, fallback))
    if not found:
        return 0, None
    key, value = found
    return _non_negative_int(value, f"prices[{key}]"), key

def resolve_threshold(policy_doc: Optional[Mapping[str, Any]], lang: str, fallback: Sequence[str] = DEFAULT_FALLBACK_LANGS):
    """(seuil, clé retenue); sans clé présente -> default_threshold hérité (ou 0)."""
    doc = policy_doc or {}
    found = first_present(doc.get("threshold_by_lang"), candidate_keys(lang, fallback))
    if found:
        key, value = found
        return _non_negative_int(value, f"threshold_by_lang[{key}]"), key
    legacy = doc.get("default_threshold")
    return (_non_negative_int(legacy, "default_threshold") if legacy is not None else 0), None

def compute_shipping(
    prices_doc: Optional[Mapping[str, Any]],
    policy_doc: Optional[Mapping[str, Any]],
    lang: str,
    subtotal: int,
    fallback: Sequence[str] = DEFAULT_FALLBACK_LANGS,
) -> ShippingQuote:
    """
    Frais finaux = 0 si (enabled ET seuil > 0 ET sous-total >= seuil) OU frais de base == 0,
    sinon frais de base.
    """
    base_fee, fee_key = resolve_fee(prices_doc, lang, fallback)
    threshold, threshold_key = resolve_threshold(policy_doc, lang, fallback)
    enabled = bool((policy_doc or {}).get("enabled", False))
    free_applied = enabled and threshold > 0 and subtotal >= threshold
    fee = 0 if (free_applied or base_fee == 0) else base_fee
    return ShippingQuote(
        fee=fee,
        base_fee=base_fee,
        fee_key=fee_key,
        enabled=enabled,
        threshold=threshold,
        threshold_key=threshold_key,
        free_applied=free_applied,
    )

def quote_shipping(site_key: str, lang: str, subtotal: int, fallback: Sequence[str] = DEFAULT_FALLBACK_LANGS) -> ShippingQuote:
    """Charge les deux documents (site puis 'default') et calcule le devis d'expédition."""
    quote = compute_shipping(
        repository.load_prices(site_key),
        repository.load_policy(site_key),
        lang,
        subtotal,
        fallback,
    )
    logger.debug(
        "shipping.service site_key=%s lang=%s fee=%s key=%s free_applied=%s",
        site_key, lang, quote.fee, quote.fee_key, quote.free_applied,
    )
    return quote
