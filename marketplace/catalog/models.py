# module marketplace.catalog.models
"""Compte vendeur (site_sellers), en lecture seule pour le tunnel de paiement."""
from typing import Any, Mapping, Optional

from pydantic import BaseModel

CONNECT_ACCOUNT_PREFIX = "acct_"

class MerchantAccount(BaseModel):
    site_key: str
    stripe_connect_account_id: Optional[str] = None
    onboarding_completed: bool = False
    ec_stop: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MerchantAccount":
        connect_id = row.get("stripe_connect_account_id")
        return cls(
            site_key=str(row.get("site_key") or ""),
            stripe_connect_account_id=str(connect_id).strip() if connect_id else None,
            onboarding_completed=bool(row.get("onboarding_completed")),
            ec_stop=bool(row.get("ec_stop")),
        )

    @property
    def has_valid_connect_account(self) -> bool:
        return bool(self.stripe_connect_account_id and self.stripe_connect_account_id.startswith(CONNECT_ACCOUNT_PREFIX))
