import re
from typing import Dict, Iterable, Optional

def is_allowed_origin(origin: Optional[str], patterns: Iterable[str]) -> bool:
    """
    Vérifie l'en-tête Origin contre l'allow-list (expressions régulières).
    - Pas d'Origin (appel serveur à serveur): autorisé.
    """
    if not origin:
        return True
    return any(re.search(p, origin) for p in patterns)

def cors_headers(origin: Optional[str]) -> Dict[str, str]:
    if not origin:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
    }

def preflight_headers(origin: Optional[str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": "POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Credentials": "true",
    }
