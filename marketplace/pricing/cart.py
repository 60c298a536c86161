"""
Logique panier pure (pas de Stripe, pas de DB).
Montants entiers dans la devise de règlement sans décimales (JPY).
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from marketplace.i18n.localization import resolve_display_name
from marketplace.utils.lookup import first_present

logger = logging.getLogger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 999

# Champs prix acceptés, par ordre de priorité (les deux derniers sont hérités)
PRICE_KEYS = ("price_incl", "price", "price_tax_incl")
QUANTITY_KEYS = ("qty", "quantity", "count", "q")

class QuoteLine(BaseModel):
    id: str
    name: str
    quantity: int
    unit_amount: int
    line_total: int

# module marketplace.pricing.cart
def clamp_quantity(raw: Any, low: int = MIN_QUANTITY, high: int = MAX_QUANTITY) -> int:
    """
    Quantité demandée -> entier dans [low, high].
    - Absente, non numérique, NaN ou infinie: 1 (jamais de rejet).
    - Les décimales sont tronquées (floor).
    """
    if raw is None or isinstance(raw, bool):
        return max(low, 1)
    try:
        n = float(raw)
    except (TypeError, ValueError):
        return max(low, 1)
    if not math.isfinite(n):
        return max(low, 1)
    return max(low, min(high, math.floor(n)))

def raw_quantity(item: Mapping[str, Any]) -> Any:
    found = first_present({k: v for k, v in item.items() if v is not None}, QUANTITY_KEYS)
    return found[1] if found else None

def aggregate_quantities(
    items: Iterable[Mapping[str, Any]],
    low: int = MIN_QUANTITY,
    high: int = MAX_QUANTITY,
) -> Dict[str, int]:
    """
    Agrège un panier [{id, qty}, ...] en {id: quantité} en conservant l'ordre d'apparition.
    - Chaque ligne est bornée, puis les doublons sont sommés et bornés à nouveau.
    - Les lignes sans id sont ignorées.
    """
    quantities: Dict[str, int] = {}
    for it in items or []:
        item_id = str(it.get("id") or "").strip()
        if not item_id:
            continue
        qty = clamp_quantity(raw_quantity(it), low, high)
        quantities[item_id] = clamp_quantity(quantities.get(item_id, 0) + qty, low, high)
    return quantities

def unit_price(product: Mapping[str, Any]) -> int:
    """
    Prix unitaire TTC stocké: premier champ présent parmi PRICE_KEYS,
    tronqué à l'entier, négatif -> 0, illisible -> 0.
    """
    found = first_present({k: v for k, v in product.items() if v is not None}, PRICE_KEYS)
    if not found:
        return 0
    try:
        n = float(found[1])
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(n):
        return 0
    return max(0, math.floor(n))

def build_quote_lines(
    products: Mapping[str, Mapping[str, Any]],
    quantities: Mapping[str, int],
    lang: str,
    source_lang: str = "ja",
    placeholder: str = "Item",
    aliases: Optional[Mapping[str, str]] = None,
) -> List[QuoteLine]:
    """
    Construit les lignes de devis dans l'ordre du panier.
    products: {id: ligne produit brute (site_products)}
    Les produits introuvables ou à prix <= 0 sont écartés sans erreur.
    """
    lines: List[QuoteLine] = []
    for item_id, qty in quantities.items():
        product = products.get(item_id)
        if not product:
            logger.debug("pricing.cart dropped missing product id=%s", item_id)
            continue
        unit = unit_price(product)
        if unit <= 0:
            logger.debug("pricing.cart dropped non-purchasable product id=%s", item_id)
            continue
        name = resolve_display_name(product_base(product), product.get("t"), lang, source_lang, placeholder, aliases)
        lines.append(QuoteLine(id=item_id, name=name, quantity=qty, unit_amount=unit, line_total=unit * qty))
    return lines

def product_base(product: Mapping[str, Any]) -> Dict[str, Any]:
    """Enregistrement de base {title, body}; les lignes héritées portent title/body à la racine."""
    base = product.get("base") if isinstance(product.get("base"), Mapping) else {}
    return {
        "title": base.get("title") or product.get("title"),
        "body": base.get("body") or product.get("body"),
    }

def subtotal(lines: Iterable[QuoteLine]) -> int:
    return sum(line.line_total for line in lines)
