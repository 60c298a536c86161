"""
Accès aux données pour la feature 'payments' (client service-role).
- pending_orders: une ligne par session Checkout ouverte (clé session_id)
- site_orders: commande finale créée par le webhook
Les écritures retournent un booléen; le service décide de l'erreur à lever.
"""
from typing import Any, Dict, Optional
import logging

import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PENDING_TABLE = "pending_orders"
ORDERS_TABLE = "site_orders"

# module marketplace.payments.repository
def save_pending_order(row: Dict[str, Any]) -> bool:
    """
    Upsert sur session_id: un rejeu idempotent (même session Stripe) donne un seul enregistrement.
    """
    try:
        (
            supabase_client.get_service_supabase()
            .table(PENDING_TABLE)
            .upsert(row, on_conflict="session_id")
            .execute()
        )
        return True
    except Exception:
        logger.exception("payments.repository.save_pending_order failed session_id=%s", row.get("session_id"))
        return False

def get_pending_order(session_id: str) -> Optional[Dict[str, Any]]:
    """Lecture seule; None si absent ou en cas d'erreur."""
    if not session_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(PENDING_TABLE)
            .select("*")
            .eq("session_id", session_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("payments.repository.get_pending_order failed session_id=%s", session_id)
        return None

def insert_order(row: Dict[str, Any]) -> bool:
    """Insert simple: une livraison dupliquée du webhook crée une seconde commande."""
    try:
        (
            supabase_client.get_service_supabase()
            .table(ORDERS_TABLE)
            .insert(row)
            .execute()
        )
        return True
    except Exception:
        logger.exception(
            "payments.repository.insert_order failed session_id=%s", row.get("stripe_checkout_session_id")
        )
        return False

def upsert_order(row: Dict[str, Any]) -> bool:
    """Création si absente (conflit sur stripe_checkout_session_id ignoré)."""
    try:
        (
            supabase_client.get_service_supabase()
            .table(ORDERS_TABLE)
            .upsert(row, on_conflict="stripe_checkout_session_id", ignore_duplicates=True)
            .execute()
        )
        return True
    except Exception:
        logger.exception(
            "payments.repository.upsert_order failed session_id=%s", row.get("stripe_checkout_session_id")
        )
        return False
