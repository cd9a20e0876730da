from types import SimpleNamespace

from backend.services.family import (
    base_name,
    family_key_of,
    family_members,
    pluralize,
    standardize_product_name,
)

VOCAB = [
    {"name": "Azul", "hex": "#0000FF"},
    {"name": "Verde", "hex": "#008000"},
    {"name": "Azul Marinho", "hex": "#000080"},
]


def _product(id, name, brand="Karsten", category="Lisas", sub_category=None, variation_group_id=None):
    return SimpleNamespace(
        id=id,
        name=name,
        brand=brand,
        category=category,
        sub_category=sub_category,
        variation_group_id=variation_group_id,
    )


def test_same_base_name_across_colours():
    """
    GIVEN "Lisa Verde" et "Lisa Azul Marinho"
    THEN même nom de base "lisa" et même clé de famille
    """
    assert base_name("Lisa Verde", VOCAB) == "lisa"
    assert base_name("Lisa Azul Marinho", VOCAB) == "lisa"
    assert family_key_of(_product("1", "Lisa Verde"), VOCAB) == family_key_of(
        _product("2", "Lisa Azul Marinho"), VOCAB
    )


def test_longest_colour_stripped_first():
    """
    GIVEN "Azul" et "Azul Marinho" dans le vocabulaire (ordre quelconque)
    THEN "Azul Marinho" est retiré comme un seul mot, pas de "marinho" résiduel
    """
    assert base_name("Listrada Azul Marinho", VOCAB) == "listrada"


def test_parenthesised_colour_and_stop_words():
    assert base_name("Capa Almofada Lisa (Verde)", VOCAB) == "lisa"
    assert base_name("Kit Lombar Veludo Azul", VOCAB) == "veludo"


def test_stop_words_match_whole_words_only():
    # "capacete" contient "capa" mais n'est pas le mot "capa"
    assert base_name("Capacete Verde", VOCAB) == "capacete"


def test_colour_only_name_overgroups():
    """Limite connue : un nom fait d'une seule couleur donne une base vide."""
    a = _product("1", "Verde")
    b = _product("2", "Azul")
    assert base_name("Verde", VOCAB) == ""
    assert family_key_of(a, VOCAB) == "karsten|lisas||"
    assert family_key_of(a, VOCAB) == family_key_of(b, VOCAB)


def test_family_members_by_key_excludes_self():
    lisa_verde = _product("1", "Lisa (Verde)")
    lisa_azul = _product("2", "Lisa (Azul)")
    other_brand = _product("3", "Lisa (Azul Marinho)", brand="Döhler")
    floral = _product("4", "Floral (Verde)")

    members = family_members(lisa_verde, [lisa_verde, lisa_azul, other_brand, floral], VOCAB)
    assert [p.id for p in members] == ["2"]


def test_family_members_explicit_group_wins():
    a = _product("1", "Jardim (Verde)", variation_group_id="var_1")
    b = _product("2", "Botânica (Azul)", variation_group_id="var_1")
    c = _product("3", "Jardim (Azul)")

    assert [p.id for p in family_members(a, [a, b, c], VOCAB)] == ["2"]


def test_standardize_product_name():
    assert standardize_product_name("verde lisa", [{"name": "Verde"}], VOCAB) == "Lisa (Verde)"
    assert standardize_product_name("Lisa (Azul Marinho)", [{"name": "azul"}], VOCAB) == "Lisa (Azul)"


def test_pluralize():
    assert pluralize("floral") == "Florais"
    assert pluralize("lisa") == "Lisas"
    assert pluralize("Listras") == "Listras"
    assert pluralize("Xadrez") == "Xadrezs"
    assert pluralize("Waterblock") == "Waterblock"
    assert pluralize("  ") == ""


def test_plural_stop_words_are_stripped():
    """
    GIVEN "Almofadas Lisa Verde" et "Kit Capas Lisa Azul"
    THEN même base "lisa" que "Lisa Verde"
    """
    assert base_name("Almofadas Lisa Verde", VOCAB) == "lisa"
    assert base_name("Kits Capas Lisa Azul", VOCAB) == "lisa"
    assert family_key_of(_product("1", "Almofadas Lisa Verde"), VOCAB) == family_key_of(
        _product("2", "Lisa Azul Marinho"), VOCAB
    )
