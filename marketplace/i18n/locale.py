"""
Normalisation des codes langue et correspondance vers la locale d'affichage Stripe Checkout.
Aucune fonction de ce module ne lève d'exception: une entrée inexploitable donne
"auto" (affichage) ou la langue par défaut (logique métier).
"""
import re
from typing import Any, Iterable, Mapping, Optional

from marketplace.utils.lookup import candidate_keys, first_present

_CANON_RE = re.compile(r"^[a-z]{2,3}(-[A-Z0-9]{2,4})?$")

# Variantes Han: simplifié -> "zh", traditionnel/HK -> codes distincts
_HAN_SIMPLIFIED = {"zh-cn", "zh-sg", "zh-hans", "zh-hans-cn", "zh-hans-sg"}
_HAN_TRADITIONAL_TW = {"zh-tw", "zh-hant", "zh-hant-tw"}
_HAN_HONG_KONG = {"zh-hk", "zh-mo", "zh-hant-hk", "zh-hant-mo"}

ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND"})

def canon_lang(code: Any, aliases: Optional[Mapping[str, str]] = None) -> str:
    """
    Code langue canonique: "ZH_tw" -> "zh-TW", "jp" -> "ja", "pt_br" -> "pt-BR".
    Retourne "" pour une entrée vide ou non textuelle.
    """
    if not isinstance(code, str):
        return ""
    c = code.strip().replace("_", "-").lower()
    if not c:
        return ""
    if aliases and c in aliases:
        return aliases[c]
    if c == "zh" or c in _HAN_SIMPLIFIED:
        return "zh"
    if c in _HAN_TRADITIONAL_TW:
        return "zh-TW"
    if c in _HAN_HONG_KONG:
        return "zh-HK"
    if c.startswith("zh-hans-"):
        return "zh"
    if c.startswith("zh-"):
        return "zh-" + c.split("-")[1].upper()
    parts = c.split("-")
    if len(parts) == 1 or not parts[1]:
        return parts[0]
    return f"{parts[0]}-{parts[1].upper()}"

def resolve_lang(code: Any, default: str = "ja", aliases: Optional[Mapping[str, str]] = None) -> str:
    """Comme canon_lang, mais retombe sur default si le résultat n'a pas la forme d'un code langue."""
    canon = canon_lang(code, aliases)
    if canon and _CANON_RE.match(canon):
        return canon
    return default

def checkout_locale(
    code: Any,
    allowed: Iterable[str],
    overrides: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Locale d'affichage Stripe la plus proche:
    surcharge explicite (ex: en -> en-GB), puis égalité exacte, puis langue de base, sinon "auto".
    """
    if not isinstance(code, str) or not code.strip():
        return "auto"
    s = code.strip()
    lowered = s.lower()
    if overrides and lowered in overrides:
        return overrides[lowered]
    by_lower = {v.lower(): v for v in allowed}
    found = first_present(by_lower, candidate_keys(lowered.replace("_", "-")))
    return found[1] if found else "auto"

def is_zero_decimal(currency: str) -> bool:
    return (currency or "").upper() in ZERO_DECIMAL_CURRENCIES

def settlement_currency(settings) -> str:
    """Devise de règlement (sans décimales) configurée, en minuscules comme l'attend Stripe."""
    return (settings.currency or "jpy").lower()
