"""
Résolution du nom affiché d'un produit pour une langue demandée.

Règle métier: si la langue demandée est la langue source, le titre de base est
utilisé tel quel (ou le libellé générique s'il est vide); les lignes traduites ne
sont jamais consultées dans ce cas.
"""
from typing import Any, Dict, Iterable, Mapping, Optional

from marketplace.i18n.locale import canon_lang
from marketplace.utils.lookup import base_language


# module marketplace.i18n.localization
def _title(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""

def _titles_by_lang(
    translations: Optional[Iterable[Mapping[str, Any]]],
    aliases: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Indexe les lignes traduites {lang, title, body} par code canonique (alias hérités compris: "kr" -> "ko").
    - Titre vide: repli sur body; les deux vides comptent comme absents.
    - En cas de doublon, la première ligne gagne.
    """
    out: Dict[str, str] = {}
    for row in translations or []:
        if not isinstance(row, Mapping):
            continue
        code = canon_lang(row.get("lang"), aliases)
        title = _title(row.get("title")) or _title(row.get("body"))
        if code and title and code not in out:
            out[code] = title
    return out

def resolve_display_name(
    base: Optional[Mapping[str, Any]],
    translations: Optional[Iterable[Mapping[str, Any]]],
    lang: str,
    source_lang: str = "ja",
    placeholder: str = "Item",
    aliases: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Nom affiché d'un produit:
    - lang == source_lang: titre de base, sinon placeholder
    - sinon: ligne exacte -> ligne langue de base -> ligne "en" -> titre de base -> placeholder
    """
    base_title = _title((base or {}).get("title"))
    if lang == source_lang:
        return base_title or placeholder

    titles = _titles_by_lang(translations, aliases)
    for code in (lang, base_language(lang), "en"):
        if code and titles.get(code):
            return titles[code]
    return base_title or placeholder

def localized_names_meta(
    name: str,
    base: Optional[Mapping[str, Any]],
    lang: str,
    source_lang: str = "ja",
) -> Dict[str, str]:
    """
    Métadonnées produit jointes à la ligne Stripe:
    {name, name_<source>, lang, name_<lang>}. name reste le titre source (repli: nom affiché).
    """
    source_title = _title((base or {}).get("title")) or name
    meta = {"name": source_title, f"name_{source_lang}": source_title, "lang": lang or source_lang}
    if lang and lang != source_lang:
        meta[f"name_{lang}"] = name
    return meta
