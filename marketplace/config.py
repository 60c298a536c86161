# marketplace.config
from pathlib import Path
import os
from typing import Dict, List, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.i18n.locale import canon_lang, is_zero_decimal
from marketplace.pricing.rounding import RoundingPolicy

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du service de checkout.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe)
- Construit une seule fois l'objet immuable CheckoutSettings (taux, alias de langues,
  allow-lists) injecté ensuite dans l'orchestrateur et le webhook
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _split_env(name: str, default: str = "") -> List[str]:
    return [p.strip() for p in _clean_env(os.getenv(name, default)).split(",") if p.strip()]

# Supabase: URL et clé service-role
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: la clé Connect (plateforme marketplace) prime sur la clé standard
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_CONNECT_SECRET_KEY = _clean_env(os.getenv("STRIPE_CONNECT_SECRET_KEY") or "") or STRIPE_SECRET_KEY
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

APP_ENV = _clean_env(os.getenv("APP_ENV") or "development").lower()
PUBLIC_ORIGIN = _clean_env(os.getenv("PUBLIC_ORIGIN") or "").rstrip("/")
LOG_LEVEL = _clean_env(os.getenv("LOG_LEVEL") or "info").lower()

# Codes hérités (codes pays utilisés comme codes langue, variantes Han)
LEGACY_LANG_ALIASES: Dict[str, str] = {
    "jp": "ja",
    "kr": "ko",
    "cn": "zh",
    "tw": "zh-TW",
    "hk": "zh-HK",
    "zh-hant": "zh-TW",
    "zh-hans": "zh",
    "ptbr": "pt-BR",
}

# Locales acceptées par Stripe Checkout (affichage, pas la devise)
STRIPE_CHECKOUT_LOCALES: Tuple[str, ...] = (
    "auto", "bg", "cs", "da", "de", "el", "en", "en-GB", "es", "es-419", "et", "fi", "fil", "fr", "fr-CA",
    "hr", "hu", "id", "it", "ja", "ko", "lt", "lv", "ms", "mt", "nb", "nl", "pl", "pt", "pt-BR", "ro", "ru",
    "sk", "sl", "sv", "th", "tr", "vi", "zh", "zh-HK", "zh-TW",
)

DEV_ORIGIN_PATTERNS: Tuple[str, ...] = (
    r"^http://localhost:\d+$",
    r"^http://127\.0\.0\.1:\d+$",
)


class CheckoutSettings(BaseModel):
    """Paramètres métier immuables, chargés une fois au démarrage (voir load_settings)."""

    model_config = ConfigDict(frozen=True)

    platform_fee_rate: float = 0.07
    connect_platform_fee_rate: float = 0.06
    currency: str = "jpy"
    source_lang: str = "ja"
    default_lang: str = "ja"
    lang_aliases: Dict[str, str] = Field(default_factory=lambda: dict(LEGACY_LANG_ALIASES))
    checkout_locales: Tuple[str, ...] = STRIPE_CHECKOUT_LOCALES
    checkout_locale_overrides: Dict[str, str] = Field(default_factory=lambda: {"en": "en-GB"})
    allowed_origin_patterns: Tuple[str, ...] = ()
    allow_dev_origins: bool = True
    product_chunk_size: int = 10
    min_quantity: int = 1
    max_quantity: int = 999
    shipping_fallback_langs: Tuple[str, ...] = ("en", "ja")
    shipping_allowed_countries: Tuple[str, ...] = ("JP",)
    shipping_line_name: str = "Shipping"
    placeholder_name: str = "Item"
    rounding_policy: str = "round"
    finalize_mode: str = "insert"
    public_origin: str = ""

    @field_validator("platform_fee_rate", "connect_platform_fee_rate")
    def fee_rate_in_range(cls, v: float) -> float:
        if not (0 <= v < 1):
            raise ValueError("fee rate must be within [0, 1)")
        return v

    @field_validator("currency")
    def zero_decimal_currency(cls, v: str) -> str:
        # montants entiers partout: seules les devises sans décimales sont acceptées
        if not is_zero_decimal(v):
            raise ValueError(f"currency must be zero-decimal: {v}")
        return v.lower()

    @field_validator("source_lang", "default_lang")
    def canonical_lang(cls, v: str) -> str:
        canon = canon_lang(v, LEGACY_LANG_ALIASES)
        if not canon:
            raise ValueError("language code must not be empty")
        return canon

    @field_validator("rounding_policy")
    def known_rounding_policy(cls, v: str) -> str:
        if v not in ("round", "floor", "ceil"):
            raise ValueError(f"unknown rounding policy: {v}")
        return v

    @field_validator("finalize_mode")
    def known_finalize_mode(cls, v: str) -> str:
        if v not in ("insert", "upsert"):
            raise ValueError(f"unknown finalize mode: {v}")
        return v

    @field_validator("product_chunk_size")
    def positive_chunk(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("product_chunk_size must be positive")
        return v

    @property
    def rounding(self) -> RoundingPolicy:
        """Politique d'arrondi à passer aux helpers de pricing.rounding (policy=settings.rounding)."""
        return RoundingPolicy(self.rounding_policy)

    def origin_patterns(self) -> Tuple[str, ...]:
        if self.allow_dev_origins:
            return tuple(self.allowed_origin_patterns) + DEV_ORIGIN_PATTERNS
        return tuple(self.allowed_origin_patterns)


def load_settings() -> CheckoutSettings:
    """
    Construit CheckoutSettings depuis l'environnement.
    - Les valeurs absentes gardent les défauts du modèle.
    - Une valeur invalide (taux hors [0,1), mode inconnu) lève une erreur pydantic au démarrage.
    """
    overrides: Dict[str, object] = {
        "allow_dev_origins": APP_ENV != "production",
        "public_origin": PUBLIC_ORIGIN,
    }
    if os.getenv("PLATFORM_FEE_RATE"):
        overrides["platform_fee_rate"] = float(_clean_env(os.getenv("PLATFORM_FEE_RATE")))
    if os.getenv("CONNECT_PLATFORM_FEE_RATE"):
        overrides["connect_platform_fee_rate"] = float(_clean_env(os.getenv("CONNECT_PLATFORM_FEE_RATE")))
    if os.getenv("SOURCE_LANG"):
        overrides["source_lang"] = _clean_env(os.getenv("SOURCE_LANG"))
    if os.getenv("ROUNDING_POLICY"):
        overrides["rounding_policy"] = _clean_env(os.getenv("ROUNDING_POLICY")).lower()
    if os.getenv("FINALIZE_MODE"):
        overrides["finalize_mode"] = _clean_env(os.getenv("FINALIZE_MODE")).lower()
    origins = _split_env("CHECKOUT_ALLOWED_ORIGINS")
    if origins:
        overrides["allowed_origin_patterns"] = tuple(origins)
    countries = _split_env("SHIPPING_ALLOWED_COUNTRIES")
    if countries:
        overrides["shipping_allowed_countries"] = tuple(c.upper() for c in countries)
    return CheckoutSettings(**overrides)
