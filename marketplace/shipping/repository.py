"""
Lecture des tables d'expédition (site_shipping_prices, site_shipping_policy).
Le document partagé est la ligne site_key = 'default'.
"""
from typing import Any, Dict, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PRICES_TABLE = "site_shipping_prices"
POLICY_TABLE = "site_shipping_policy"
DEFAULT_SITE_KEY = "default"

# module marketplace.shipping.repository
def _fetch_row(table: str, site_key: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(table)
            .select("*")
            .eq("site_key", site_key)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("shipping.repository._fetch_row failed table=%s site_key=%s", table, site_key)
        return None

def load_site_or_default(table: str, site_key: str) -> Optional[Dict[str, Any]]:
    """
    Document du site s'il existe (même vide), sinon document 'default', sinon None.
    Un document de site présent n'est jamais complété par le défaut.
    """
    row = _fetch_row(table, site_key)
    if row is not None:
        return row
    logger.debug("shipping.repository no %s row for site_key=%s, using default", table, site_key)
    return _fetch_row(table, DEFAULT_SITE_KEY)

def load_prices(site_key: str) -> Optional[Dict[str, Any]]:
    return load_site_or_default(PRICES_TABLE, site_key)

def load_policy(site_key: str) -> Optional[Dict[str, Any]]:
    return load_site_or_default(POLICY_TABLE, site_key)
