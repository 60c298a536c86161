"""
Accès aux données catalogue: comptes vendeurs et produits d'un site.
Compte vendeur: lecture tolérante (erreur journalisée -> None).
Produits: une erreur de lecture lève CatalogReadError (pas de panier partiel).
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

import marketplace.infra.supabase_client as supabase_client
from marketplace.catalog.models import MerchantAccount

logger = logging.getLogger(__name__)

SELLERS_TABLE = "site_sellers"
PRODUCTS_TABLE = "site_products"
PRODUCT_CHUNK_SIZE = 10

class CatalogReadError(RuntimeError):
    """Lecture des produits impossible (lot en échec)."""

# module marketplace.catalog.repository
def get_merchant(site_key: str) -> Optional[MerchantAccount]:
    """Compte vendeur du site, ou None si absent (ou lecture impossible)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(SELLERS_TABLE)
            .select("site_key, stripe_connect_account_id, onboarding_completed, ec_stop")
            .eq("site_key", site_key)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return MerchantAccount.from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("catalog.repository.get_merchant failed site_key=%s", site_key)
        return None

def _chunks(ids: List[str], size: int) -> Iterable[List[str]]:
    for i in range(0, len(ids), size):
        yield ids[i:i + size]

def fetch_products_chunked(site_key: str, ids: Iterable[str], chunk_size: int = PRODUCT_CHUNK_SIZE) -> Dict[str, Dict[str, Any]]:
    """
    Charge les produits du site par lots de chunk_size ids (limite de requête du store).
    - Lots lus séquentiellement; un lot en échec lève CatalogReadError.
    - Retourne {id: ligne produit}; les ids inconnus sont simplement absents.
    """
    unique = list(dict.fromkeys(str(i) for i in ids if i))
    products: Dict[str, Dict[str, Any]] = {}
    for chunk in _chunks(unique, chunk_size):
        try:
            res = (
                supabase_client.get_service_supabase()
                .table(PRODUCTS_TABLE)
                .select("*")
                .eq("site_key", site_key)
                .in_("id", chunk)
                .execute()
            )
        except Exception as e:
            logger.exception("catalog.repository.fetch_products_chunked failed site_key=%s ids=%s", site_key, chunk)
            raise CatalogReadError(f"product read failed for site {site_key}") from e
        for row in res.data or []:
            products[str(row.get("id"))] = row
    return products
