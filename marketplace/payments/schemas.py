"""Corps de requête des points d'entrée checkout (validation pydantic explicite)."""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from marketplace.pricing.cart import QUANTITY_KEYS

class CartItem(BaseModel):
    """Ligne panier {id, qty?}. quantity/count/q sont acceptés comme alias de qty."""
    model_config = ConfigDict(extra="ignore")

    id: str
    qty: Any = None

    @model_validator(mode="before")
    @classmethod
    def qty_aliases(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("qty") is None:
            for key in QUANTITY_KEYS[1:]:
                if data.get(key) is not None:
                    return {**data, "qty": data[key]}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> str:
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValueError("id must be a string")
        s = str(v).strip()
        if not s:
            raise ValueError("id must not be empty")
        return s


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    siteKey: str
    items: List[CartItem] = Field(min_length=1)
    lang: Optional[str] = None
    origin: Optional[str] = None
    idempotencyKey: Optional[str] = Field(default=None, max_length=200)

    @field_validator("siteKey")
    @classmethod
    def site_key_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("siteKey must not be empty")
        return v

    @field_validator("lang", "origin", "idempotencyKey", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Optional[str]:
        # valeurs non textuelles ignorées: le résolveur de langue retombe sur le défaut
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()
