"""Unit tests for text normalization and n-gram generation."""

import pytest

from doctor_match.search.ngrams import generate_gram_lists, generate_ngrams, gram_set, normalize_text


pytestmark = pytest.mark.unit


class TestNormalizeText:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_text("Dr. Jane-Doe, MBBS!") == "dr janedoe mbbs"

    def test_keeps_whitespace_digits_and_underscores(self):
        assert normalize_text("General_Physician 12  Years") == "general_physician 12  years"

    def test_keeps_non_ascii_letters(self):
        assert normalize_text("Café Clinic") == "café clinic"

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_input(self, text):
        assert normalize_text(text) == ""


class TestGenerateNgrams:
    def test_sliding_window_trigrams(self):
        assert generate_ngrams("Acne") == ["acn", "cne"]

    def test_length_is_normalized_length_minus_n_plus_one(self):
        text = "heart care"
        for n in (1, 2, 3, 4):
            assert len(generate_ngrams(text, n)) == len(text) - n + 1

    def test_duplicates_and_order_preserved(self):
        assert generate_ngrams("aaaa", 2) == ["aa", "aa", "aa"]

    def test_grams_can_span_word_boundaries(self):
        assert "e d" in generate_ngrams("Jane Doe", 3)

    def test_punctuation_removed_before_windowing(self):
        assert generate_ngrams("a.b", 2) == ["ab"]

    @pytest.mark.parametrize("text", ["", None, "ab", "!!!"])
    def test_too_short_returns_empty_list(self, text):
        assert generate_ngrams(text, 3) == []

    def test_non_positive_size_rejected(self):
        with pytest.raises(ValueError, match="must be positive"):
            generate_ngrams("text", 0)


def test_gram_set_is_distinct():
    assert gram_set("aaaa", 2) == frozenset({"aa"})


def test_generate_gram_lists_keys_by_size():
    grams = generate_gram_lists("card")
    assert grams == {2: ["ca", "ar", "rd"], 3: ["car", "ard"], 4: ["card"]}
