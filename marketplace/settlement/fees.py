"""Commission plateforme et jeton de corrélation des virements (transfer_group)."""
from decimal import Decimal, ROUND_FLOOR
import hashlib
import secrets
import string
import time
from typing import Optional, Union

_BASE36 = string.digits + string.ascii_lowercase

# module marketplace.settlement.fees
def platform_fee(subtotal: int, rate: Union[float, str, Decimal]) -> int:
    """
    floor(subtotal * rate) calculé en Decimal, borné à [0, subtotal].
    Ex: platform_fee(3000, 0.07) -> 210 ; platform_fee(999, 0.06) -> 59
    """
    if subtotal <= 0:
        return 0
    fee = (Decimal(subtotal) * Decimal(str(rate))).quantize(Decimal("1"), rounding=ROUND_FLOOR)
    return max(0, min(subtotal, int(fee)))

def new_transfer_group(site_key: str, now_ms: Optional[int] = None) -> str:
    """grp_<site>_<epoch ms>_<6 caractères base36 aléatoires>"""
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"grp_{site_key}_{ts}_{suffix}"

def idempotent_transfer_group(site_key: str, idempotency_key: str) -> str:
    """
    grp_<site>_k<16 hex>: dérivé de la clé d'idempotence client.
    Stripe refuse un rejeu idempotent dont les paramètres diffèrent.
    """
    digest = hashlib.sha256(f"{site_key}:{idempotency_key}".encode("utf-8")).hexdigest()
    return f"grp_{site_key}_k{digest[:16]}"
