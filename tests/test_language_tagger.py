"""
Tests for the language detection tagger.
"""

import pytest

from doc_enricher.errors import ConfigurationError
from doc_enricher.handlers.language_tagger import LanguageTagger, detect_languages
from doc_enricher.utils.merge import rank_scores

SAMPLE_TEXTS = {
    "en": "just a bit of text",
    "fr": "Le petit chat dort sur le canapé pendant que les enfants jouent dans le jardin avec leurs amis.",
    "it": "Il piccolo gatto dorme sul divano mentre i bambini giocano in giardino con i loro amici.",
    "es": "El pequeño gato duerme en el sofá mientras los niños juegan en el jardín con sus amigos.",
}

MOSTLY_GERMAN = (
    "Alice fing an sich zu langweilen; sie saß schon lange bei ihrer "
    "Schwester am Ufer und hatte nichts zu thun. Das Buch, das ihre "
    "Schwester las, gefiel ihr nicht; denn es waren weder Bilder noch "
    "[2] Gespräche darin. „Und was nützen Bücher,“ dachte Alice, „ohne "
    "Bilder und Gespräche?“\n\n"
    "Sie überlegte sich eben, (so gut es ging, denn sie war schläfrig "
    "und dumm von der Hitze,) ob es der Mühe werth sei aufzustehen und "
    "Gänseblümchen zu pflücken, um eine Kette damit zu machen, als "
    "plötzlich ein weißes Kaninchen mit rothen Augen dicht an ihr "
    "vorbeirannte.\n\n"
    "This last line is purposely in English."
)


def _tag(tagger, doc):
    tagger.execute(doc, parsed=True)
    return doc.metadata


class TestDetection:
    def test_default_language_detection(self, text_doc):
        tagger = LanguageTagger(["en", "fr", "it", "es"])
        for lang, text in SAMPLE_TEXTS.items():
            assert _tag(tagger, text_doc(text)).language == lang

    def test_non_matching_doc_language(self, text_doc):
        tagger = LanguageTagger(["fr", "it"])
        md = _tag(tagger, text_doc(SAMPLE_TEXTS["en"]))
        assert md.language in ("fr", "it")

    def test_whole_text_winner_over_mixed_content(self, text_doc):
        tagger = LanguageTagger(["en", "fr", "nl"], keep_probabilities=True)
        md = _tag(tagger, text_doc(MOSTLY_GERMAN))
        assert md.language == "nl"

    def test_deterministic_across_runs(self):
        first = detect_languages(MOSTLY_GERMAN, ["en", "fr", "nl"])
        for _ in range(3):
            assert detect_languages(MOSTLY_GERMAN, ["en", "fr", "nl"]) == first

    def test_open_ended_detection(self, text_doc):
        md = _tag(LanguageTagger(), text_doc(MOSTLY_GERMAN))
        assert md.language == "de"

    def test_empty_text_leaves_field_unset(self, text_doc):
        md = _tag(LanguageTagger(["en", "fr"]), text_doc("   "))
        assert md.language is None


class TestProbabilitiesAndFallback:
    def test_keep_probabilities_ranked_descending(self, text_doc):
        tagger = LanguageTagger(["en", "fr", "nl"], keep_probabilities=True)
        md = _tag(tagger, text_doc(MOSTLY_GERMAN))
        assert md.get_string("document.language.1.tag") == "nl"
        probs = []
        rank = 1
        while f"document.language.{rank}.tag" in md:
            probs.append(float(md.get_string(f"document.language.{rank}.probability")))
            rank += 1
        assert probs == sorted(probs, reverse=True)
        assert all(0.0 < p <= 1.0 for p in probs)

    def test_probabilities_not_kept_by_default(self, text_doc):
        md = _tag(LanguageTagger(["en", "fr"]), text_doc(SAMPLE_TEXTS["en"]))
        assert "document.language.1.tag" not in md

    def test_fallback_when_nothing_detected(self, text_doc):
        md = _tag(LanguageTagger(["en", "it"], fallback_language="fr"), text_doc("1234 5678"))
        assert md.language == "fr"

    def test_fallback_when_not_confident(self, text_doc):
        tagger = LanguageTagger(["en", "fr"], fallback_language="it", min_confidence=1.01)
        assert _tag(tagger, text_doc(SAMPLE_TEXTS["en"])).language == "it"


class TestConfig:
    def test_unsupported_languages_ignored(self):
        tagger = LanguageTagger(["it", "br", "en"])
        assert tagger.languages == ["it", "br", "en"]

    def test_all_unsupported_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="None of the configured languages"):
            LanguageTagger(["xx", "yy"])

    def test_write_read(self):
        tagger = LanguageTagger(keep_probabilities=True, fallback_language="fr")
        assert LanguageTagger.from_config(tagger.to_config()) == tagger

        tagger = LanguageTagger(["it", "br", "en"], keep_probabilities=True, fallback_language="fr")
        assert LanguageTagger.from_config(tagger.to_config()) == tagger

    def test_comma_separated_languages_in_config(self):
        tagger = LanguageTagger.from_config({"languages": "en, fr"})
        assert tagger.languages == ["en", "fr"]


class TestRankScores:
    def test_descending_with_declared_tie_order(self):
        scores = [("fr", 0.25), ("en", 0.5), ("it", 0.25)]
        assert rank_scores(scores, order=["it", "en", "fr"]) == [("en", 0.5), ("it", 0.25), ("fr", 0.25)]

    def test_unknown_keys_after_declared_ones(self):
        scores = [("zz", 0.5), ("en", 0.5)]
        assert rank_scores(scores, order=["en"]) == [("en", 0.5), ("zz", 0.5)]
