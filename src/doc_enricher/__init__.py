"""doc_enricher

Restriction-gated handler pipeline for enriching documents during ingestion.

Public API surface:
- doc_enricher.cli.main : CLI entrypoint
- doc_enricher.pipeline.runner.Pipeline : run an ordered handler chain over documents
- doc_enricher.handlers : add/extend taggers, filters and transformers
- doc_enricher.scripting : plug in scripting engines

Native format decoding, container splitting and crawling live outside this package;
they hand us a readable byte stream plus a metadata map.
"""
__all__ = ["__version__"]
__version__ = "0.3.0"
