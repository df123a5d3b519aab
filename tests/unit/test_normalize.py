"""Unit tests for ingredient text normalization."""

from ingredient_matcher.normalize import (
    DEFAULT_INSTRUCTION,
    clean_ingredient,
    is_embeddable,
    normalize,
)


class TestNormalize:
    """Test embedding text composition."""

    def test_lowercases_and_trims(self):
        assert clean_ingredient("  Hakkede TOMATER \n") == "hakkede tomater"

    def test_none_is_empty(self):
        assert clean_ingredient(None) == ""
        assert not is_embeddable(None)

    def test_whitespace_only_is_not_embeddable(self):
        assert not is_embeddable("   \t")
        assert is_embeddable(" løg ")

    def test_default_layout(self):
        text = normalize("  Løg ")
        assert text == f"{DEFAULT_INSTRUCTION}\n\nIngredient: løg"

    def test_instructions_are_included(self):
        text = normalize("Løg", instructions="Foretræk økologisk")
        assert text == (
            f"{DEFAULT_INSTRUCTION}\n\nAdditional instructions: Foretræk økologisk"
            "\n\nIngredient: løg"
        )

    def test_blank_instructions_are_ignored(self):
        assert normalize("løg", instructions="  ") == normalize("løg")

    def test_instructions_change_the_key(self):
        assert normalize("løg") != normalize("løg", instructions="hvide løg")

    def test_deterministic(self):
        assert normalize("Fløde 38%", "x") == normalize("fløde 38%  ", "x")

    def test_custom_default_instruction(self):
        assert normalize("mel", default_instruction="Match titel.").startswith("Match titel.")
