"""
FamilyResolver : regroupe les produits qui sont "la même almofada" en couleurs différentes.

Pas de clé étrangère entre couleurs : la famille est dérivée du nom libre,
de la marque et de la catégorie.

    family_key = brand | category | subCategory | nom de base normalisé   (en minuscules)

Heuristique best-effort, PAS une partition garantie :
un nom composé uniquement d'une couleur donne un nom de base vide et
tous ces produits tombent dans la même famille (limite connue, non corrigée).
"""

from __future__ import annotations

import re
from typing import Iterable, Protocol, Sequence

# Termes génériques retirés du nom avant comparaison
STOP_WORDS = ("capa", "almofada", "cheia", "vazia", "enchimento", "kit", "lombar")

# singulier ou pluriel ("capas", "almofadas", "kits")
_STOP_WORDS_RE = re.compile(r"\b(?:" + "|".join(STOP_WORDS) + r")s?\b", re.IGNORECASE)
_SPACES_RE = re.compile(r"\s\s+")
_PARENS_RE = re.compile(r"[()]")

# Mots gardés tels quels par pluralize
_PLURAL_EXCLUSIONS = {"Waterblock", "Gorgurão", "(Gorgurão)"}


class NamedColor(Protocol):
    name: str


class FamilyProduct(Protocol):
    id: str
    name: str
    brand: str
    category: str
    sub_category: str | None
    variation_group_id: str | None


def _color_name(color) -> str:
    if isinstance(color, str):
        return color
    if isinstance(color, dict):
        return color["name"]
    return color.name


def sorted_vocabulary(vocabulary: Iterable) -> list[str]:
    """Noms de couleur, les plus longs d'abord ("Azul Marinho" avant "Azul")."""
    names = {_color_name(c).strip() for c in vocabulary}
    return sorted((n for n in names if n), key=lambda n: (-len(n), n.lower()))


def _color_pattern(color_name: str) -> re.Pattern[str]:
    escaped = re.escape(color_name)
    return re.compile(rf"\b{escaped}\b|\({escaped}\)", re.IGNORECASE)


def strip_colors(name: str, vocabulary: Iterable) -> str:
    result = name
    for color_name in sorted_vocabulary(vocabulary):
        result = _color_pattern(color_name).sub("", result)
    return result


def _clean(text: str) -> str:
    return _PARENS_RE.sub("", _SPACES_RE.sub(" ", text)).strip()


def base_name(name: str, vocabulary: Iterable) -> str:
    """
    "Lisa Azul Marinho" -> "lisa"
    "Capa Almofada Verde (Veludo)" -> "veludo"
    """
    stripped = strip_colors(name.lower(), vocabulary)
    stripped = _STOP_WORDS_RE.sub("", stripped)
    # collapse après retrait des parenthèses : "( )" laisse des doubles espaces
    return _SPACES_RE.sub(" ", _clean(stripped)).strip()


def family_key_of(product: FamilyProduct, vocabulary: Iterable) -> str:
    parts = (
        product.brand or "",
        product.category or "",
        product.sub_category or "",
        base_name(product.name, vocabulary),
    )
    return "|".join(parts).lower()


def family_members(
    product: FamilyProduct,
    catalog: Iterable[FamilyProduct],
    vocabulary: Sequence,
) -> list[FamilyProduct]:
    """
    "Outras cores deste item".
    Groupe explicite (variation_group_id) prioritaire, sinon clé dérivée.
    Le produit lui-même est exclu.
    """
    others = [p for p in catalog if p.id != product.id]
    if product.variation_group_id:
        return [p for p in others if p.variation_group_id == product.variation_group_id]

    key = family_key_of(product, vocabulary)
    return [p for p in others if family_key_of(p, vocabulary) == key]


def standardize_product_name(name: str, colors: Sequence, vocabulary: Iterable) -> str:
    """
    Nom canonique enregistré : "<Base> (<Couleur principale>)".
    "verde lisa" + [Verde] -> "Lisa (Verde)"
    """
    stripped = _SPACES_RE.sub(" ", strip_colors(name.strip(), vocabulary)).strip()
    base = _clean(stripped[:1].upper() + stripped[1:])
    if colors:
        color = _color_name(colors[0])
        return f"{base} ({color[:1].upper() + color[1:]})"
    return base


def pluralize(word: str) -> str:
    """Catégories au pluriel, à la portugaise : "Floral" -> "Florais", "Lisa" -> "Lisas"."""
    trimmed = word.strip()
    if not trimmed:
        return ""
    if trimmed in _PLURAL_EXCLUSIONS:
        return trimmed

    capitalized = trimmed[:1].upper() + trimmed[1:]
    lower = capitalized.lower()
    if lower.endswith("s"):
        return capitalized
    if lower[-1] in "aeiou":
        return capitalized + "s"
    if lower.endswith("l"):
        return capitalized[:-1] + "is"
    return capitalized + "s"
