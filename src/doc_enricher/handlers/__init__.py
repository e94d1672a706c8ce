"""Handlers: taggers, filters and transformers run by the pipeline."""

from .base import DocumentFilter, DocumentTagger, DocumentTransformer, Handler
from .dom_tagger import DOMExtractDetails, DOMTagger
from .language_tagger import LanguageTagger
from .restrictions import Restriction, applies
from .script import ScriptFilter, ScriptTagger, ScriptTransformer

__all__ = [
    "DOMExtractDetails",
    "DOMTagger",
    "DocumentFilter",
    "DocumentTagger",
    "DocumentTransformer",
    "Handler",
    "LanguageTagger",
    "Restriction",
    "ScriptFilter",
    "ScriptTagger",
    "ScriptTransformer",
    "applies",
]
