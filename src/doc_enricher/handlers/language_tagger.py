"""Language detection tagger.

Scores the document text against candidate languages with langdetect (n-gram
profiles, naive Bayes) and stores the winner under `document.language`.

Options:
- languages: candidate codes; the model is restricted to these (empty = every
  language langdetect ships a profile for)
- keep_probabilities: also store the ranked distribution as
  `document.language.<rank>.tag` / `document.language.<rank>.probability`
- fallback_language: used when nothing is detected or the best score is below
  `min_confidence`
- max_text_length: only this many leading characters are scored

The whole text is scored as one unit. A document mostly written in one language
with a sentence in another is tagged with the dominant one.
"""

from __future__ import annotations
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from langdetect.detector_factory import DetectorFactory, PROFILES_DIRECTORY
from langdetect.lang_detect_exception import LangDetectException

from ..errors import ConfigurationError
from ..pipeline.context import DOC_LANGUAGE
from ..utils.merge import rank_scores
from .base import DocumentTagger

log = logging.getLogger("doc_enricher.handlers.language")

DEFAULT_MAX_TEXT_LENGTH = 10000
DETECTOR_SEED = 0


@lru_cache(maxsize=1)
def detector_factory() -> DetectorFactory:
    """Profiles are loaded once per process and shared read-only."""
    factory = DetectorFactory()
    factory.load_profile(PROFILES_DIRECTORY)
    factory.set_seed(DETECTOR_SEED)
    return factory


def supported_languages() -> List[str]:
    return list(detector_factory().get_lang_list())


def detect_languages(
    text: str,
    candidates: Iterable[str] = (),
    *,
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
) -> List[Tuple[str, float]]:
    """Rank languages for `text`, best first.

    Ties keep the order of `candidates`. Returns an empty list when the text has no
    usable features.
    """
    candidates = list(candidates)
    factory = detector_factory()
    detector = factory.create()
    detector.set_max_text_length(max_text_length)
    if candidates:
        detector.set_prior_map({lang: 1.0 for lang in candidates})
    detector.append(text)
    try:
        detector.get_probabilities()
    except LangDetectException as e:
        log.debug(f"language detection found nothing: {e}")
        return []
    scores = [
        (lang, prob)
        for lang, prob in zip(detector.langlist, detector.langprob)
        if prob > 0.0 and (not candidates or lang in candidates)
    ]
    return rank_scores(scores, order=candidates or detector.langlist)


class LanguageTagger(DocumentTagger):
    name = "language_tagger"

    def __init__(
        self,
        languages: Optional[Iterable[str]] = None,
        *,
        keep_probabilities: bool = False,
        fallback_language: Optional[str] = None,
        min_confidence: float = 0.0,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.languages: List[str] = [l.strip() for l in (languages or []) if l and l.strip()]
        self.keep_probabilities = bool(keep_probabilities)
        self.fallback_language = fallback_language or None
        self.min_confidence = float(min_confidence)
        self.max_text_length = int(max_text_length)
        if self.max_text_length <= 0:
            raise ConfigurationError(f"max_text_length must be positive, got {max_text_length}")
        self._candidates = self._supported_candidates()

    def _supported_candidates(self) -> List[str]:
        if not self.languages:
            return []
        supported = set(supported_languages())
        usable = [l for l in self.languages if l in supported]
        unknown = [l for l in self.languages if l not in supported]
        if unknown:
            log.warning(f"{self.id}: no language profile for {unknown}; ignored")
        if not usable:
            raise ConfigurationError(
                f"None of the configured languages are supported: {self.languages}"
            )
        return usable

    def tag(self, reference, content, metadata, charset, parsed, cancel=None):
        text = content.read_text(charset, max_chars=self.max_text_length)
        ranked = detect_languages(text, self._candidates, max_text_length=self.max_text_length)

        language = None
        if ranked and ranked[0][1] >= self.min_confidence:
            language = ranked[0][0]
        elif self.fallback_language:
            log.debug(f"{reference}: no confident language (best={ranked[:1]}); "
                      f"using fallback {self.fallback_language}")
            language = self.fallback_language
        elif ranked:
            language = ranked[0][0]

        if language:
            metadata.set_string(DOC_LANGUAGE, language)
        if self.keep_probabilities:
            for rank, (lang, prob) in enumerate(ranked, start=1):
                metadata.set_string(f"{DOC_LANGUAGE}.{rank}.tag", lang)
                metadata.set_string(f"{DOC_LANGUAGE}.{rank}.probability", repr(round(prob, 6)))

    def options_to_config(self) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {
            "languages": list(self.languages),
            "keep_probabilities": self.keep_probabilities,
            "min_confidence": self.min_confidence,
            "max_text_length": self.max_text_length,
        }
        if self.fallback_language:
            cfg["fallback_language"] = self.fallback_language
        return cfg

    @classmethod
    def options_from_config(cls, cfg: Dict[str, Any]) -> Dict[str, Any]:
        languages = cfg.get("languages") or []
        if isinstance(languages, str):
            languages = [l for l in languages.split(",")]
        return {
            "languages": languages,
            "keep_probabilities": bool(cfg.get("keep_probabilities", False)),
            "fallback_language": cfg.get("fallback_language"),
            "min_confidence": float(cfg.get("min_confidence", 0.0)),
            "max_text_length": int(cfg.get("max_text_length", DEFAULT_MAX_TEXT_LENGTH)),
        }
