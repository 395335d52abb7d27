from equipment_search.text.normalization import (
    char_ngrams,
    normalize_equip,
    simple_tokenize,
    strip_accents,
    word_ngrams,
)


def test_strip_accents():
    assert strip_accents("Pressão Água Pó") == "Pressao Agua Po"
    assert strip_accents("") == ""


def test_simple_tokenize_drops_punctuation_and_accents():
    assert simple_tokenize("Aspirador de Pó/Água") == ["aspirador", "de", "po", "agua"]


def test_char_ngrams_pad_each_word():
    assert char_ngrams("ab", 3, 3) == [" ab", "ab "]
    assert char_ngrams("Mop", 3, 5) == [" mo", "mop", "op ", " mop", "mop ", " mop "]


def test_word_ngrams():
    assert word_ngrams("mop giratorio balde", 1, 2) == [
        "mop",
        "giratorio",
        "balde",
        "mop giratorio",
        "giratorio balde",
    ]


class TestNormalizeEquip:
    def test_joins_number_and_unit(self):
        assert normalize_equip("Lavadora 7 CV") == "lavadora 7hp"
        assert normalize_equip("Motor 220 V") == "motor 220v"

    def test_decimal_comma(self):
        assert normalize_equip("motor 1,5 kw") == "motor 1.5kw"

    def test_singularizes_plurals(self):
        assert normalize_equip("Vassouras") == "vassoura"
        assert normalize_equip("motores") == "motor"

    def test_short_tokens_untouched(self):
        assert normalize_equip("mop gas") == "mop gas"

    def test_empty(self):
        assert normalize_equip("") == ""
        assert normalize_equip("   ") == ""
