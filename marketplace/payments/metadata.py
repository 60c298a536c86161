"""
Sérialisation/désérialisation des métadonnées Stripe de la session.
Stripe impose des valeurs str de 500 caractères au plus: la liste d'articles est
dégradée (moins de champs, puis vide) pour tenir dans cette limite.
"""
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

METADATA_VALUE_LIMIT = 500

# Jeux de champs du plus riche au plus compact
_ITEM_FIELD_LEVELS = (
    ("id", "name", "quantity", "unit_amount"),
    ("id", "quantity", "unit_amount"),
    ("id", "quantity"),
)

# module marketplace.payments.metadata
def _compact(items: Sequence[Mapping[str, Any]], fields: Sequence[str]) -> str:
    return json.dumps(
        [{f: it.get(f) for f in fields} for it in items],
        separators=(",", ":"),
        ensure_ascii=False,
    )

def encode_items(items: Sequence[Mapping[str, Any]], limit: int = METADATA_VALUE_LIMIT) -> str:
    """JSON compact des articles, dégradé jusqu'à tenir dans limit; "" si impossible."""
    for fields in _ITEM_FIELD_LEVELS:
        encoded = _compact(items, fields)
        if len(encoded) <= limit:
            return encoded
    logger.warning("payments.metadata items too long for metadata (%s lines), stored as empty", len(items))
    return ""

def decode_items(raw: Optional[str]) -> List[Dict[str, Any]]:
    """
    Relit la liste d'articles des métadonnées.
    - Tolérant aux erreurs: retourne [] si vide, JSON invalide ou pas une liste.
    """
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("payments.metadata unparseable items metadata")
        return []
    if not isinstance(data, list):
        return []
    return [it for it in data if isinstance(it, dict)]

def build_session_metadata(
    *,
    site_key: str,
    ui_lang: Optional[str],
    lang: str,
    currency: str,
    fee_rate: float,
    transfer_group: str,
    seller_connect_id: str,
    settlement_style: str,
    shipping_fee: int,
    grand_total: int,
    free_shipping_enabled: bool,
    free_shipping_threshold: int,
    free_shipping_applied: bool,
    items: Sequence[Mapping[str, Any]],
) -> Dict[str, str]:
    """Métadonnées suffisantes pour reconstruire le calcul (toutes les valeurs en str)."""
    return {
        "site_key": site_key,
        "ui_lang": ui_lang or "",
        "lang": lang,
        "currency": currency.upper(),
        "fee_rate": str(fee_rate),
        "transfer_group": transfer_group,
        "seller_connect_id": seller_connect_id,
        "settlement_style": settlement_style,
        "shipping_fee": str(shipping_fee),
        "grand_total": str(grand_total),
        "free_shipping_enabled": "true" if free_shipping_enabled else "false",
        "free_shipping_threshold": str(free_shipping_threshold),
        "free_shipping_applied": "true" if free_shipping_applied else "false",
        "items": encode_items(items),
    }

def extract_metadata_from_session(session: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Extrait les champs utiles au webhook depuis session["metadata"].
    - site_key vide -> None (la commande est tout de même enregistrée)
    """
    meta = (session or {}).get("metadata") or {}
    return {
        "site_key": meta.get("site_key") or None,
        "transfer_group": meta.get("transfer_group") or None,
        "seller_connect_id": meta.get("seller_connect_id") or None,
        "settlement_style": meta.get("settlement_style") or None,
        "items": decode_items(meta.get("items")),
    }
