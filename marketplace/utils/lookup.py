"""
Résolution « première clé présente » dans une liste ordonnée de candidats.
Utilisée par le tarif d'expédition, le seuil de livraison gratuite et la locale Checkout.
"""
from typing import Any, Iterable, List, Mapping, Optional, Tuple

def base_language(code: str) -> str:
    return (code or "").split("-")[0]

def candidate_keys(code: str, tail: Iterable[str] = ()) -> List[str]:
    """
    Construit [code exact, langue de base, *tail] sans doublons ni entrées vides.
    Ex: candidate_keys("fr-CA", ("en", "ja")) -> ["fr-CA", "fr", "en", "ja"]
    """
    ordered: List[str] = []
    for key in (code, base_language(code), *tail):
        if key and key not in ordered:
            ordered.append(key)
    return ordered

def first_present(table: Optional[Mapping[str, Any]], candidates: Iterable[str]) -> Optional[Tuple[str, Any]]:
    """
    Retourne (clé, valeur) du premier candidat dont la clé EXISTE dans table.
    - La valeur n'est pas testée: 0, "" ou False sont des réponses valides et finales.
    - Retourne None si aucun candidat n'est présent (ou si table n'est pas un mapping).
    """
    if not isinstance(table, Mapping):
        return None
    for key in candidates:
        if key in table:
            return key, table[key]
    return None
