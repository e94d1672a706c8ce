"""
Tests for the pipeline runner.
"""

import pytest

from doc_enricher.errors import HandlerExecutionError, ScriptTimeoutError
from doc_enricher.handlers.base import DocumentFilter, DocumentTagger
from doc_enricher.handlers.dom_tagger import DOMTagger
from doc_enricher.handlers.language_tagger import LanguageTagger
from doc_enricher.handlers.script import ScriptFilter, ScriptTagger, ScriptTransformer
from doc_enricher.pipeline.context import Document, Verdict
from doc_enricher.pipeline.runner import (
    STATUS_ERROR, STATUS_EXCLUDED, STATUS_INCLUDED, Pipeline, summarize,
)


class RecordingTagger(DocumentTagger):
    name = "recording"

    def __init__(self, label, calls, **kwargs):
        super().__init__(**kwargs)
        self.label = label
        self.calls = calls

    def tag(self, reference, content, metadata, charset, parsed, cancel=None):
        self.calls.append(self.label)
        metadata.add_string("seen", self.label)


class FixedFilter(DocumentFilter):
    name = "fixed_filter"

    def __init__(self, verdict, **kwargs):
        super().__init__(**kwargs)
        self.verdict = verdict

    def accept(self, reference, content, metadata, charset, parsed, cancel=None):
        return self.verdict


class BrokenTagger(DocumentTagger):
    name = "broken"

    def tag(self, reference, content, metadata, charset, parsed, cancel=None):
        raise OSError("disk on fire")


class TestProcess:
    def test_handlers_run_in_order(self, text_doc):
        calls = []
        pipeline = Pipeline([RecordingTagger(str(i), calls, handler_id=f"h{i}") for i in range(4)])
        result = pipeline.process(text_doc("x"))
        assert calls == ["0", "1", "2", "3"]
        assert result.metadata["seen"] == ["0", "1", "2", "3"]
        assert result.applied == ["h0", "h1", "h2", "h3"]

    def test_restrictions_see_earlier_mutations(self, text_doc):
        calls = []
        pipeline = Pipeline([
            ScriptTagger("metadata.set_string('stage', 'ready')"),
            RecordingTagger("gated", calls, restrictions=[{"field": "stage", "pattern": "ready"}]),
            RecordingTagger("never", calls, restrictions=[{"field": "stage", "pattern": "other"}]),
        ])
        pipeline.process(text_doc("x"))
        assert calls == ["gated"]

    def test_first_exclude_wins(self, text_doc):
        calls = []
        pipeline = Pipeline([
            FixedFilter(Verdict.NO_OPINION, handler_id="f0"),
            FixedFilter(Verdict.INCLUDE, handler_id="f1"),
            FixedFilter(Verdict.EXCLUDE, handler_id="f2"),
            FixedFilter(Verdict.EXCLUDE, handler_id="f3"),
            RecordingTagger("after", calls),
        ])
        result = pipeline.process(text_doc("x"))
        assert result.excluded
        assert result.excluded_by == "f2"
        assert calls == []

    def test_filter_restricted_out_does_not_exclude(self, text_doc):
        pipeline = Pipeline([
            FixedFilter(Verdict.EXCLUDE, restrictions=[{"field": "kind", "pattern": "spam"}]),
        ])
        assert not pipeline.process(text_doc("x", kind="ham")).excluded

    def test_transformer_output_seen_by_later_handlers(self, text_doc):
        pipeline = Pipeline([
            ScriptTransformer("output.write(content.replace('Alice', 'Roger'))"),
            ScriptTagger("metadata.set_string('body', content)"),
        ])
        doc = text_doc("Alice and Alice")
        with doc:
            result = pipeline.process(doc, release=False)
            assert result.replaced
            assert doc.content.read_text() == "Roger and Roger"
        assert result.metadata["body"] == ["Roger and Roger"]

    def test_replaced_content_kept_after_release(self, text_doc):
        pipeline = Pipeline([ScriptTransformer("content[::-1]")])
        doc = text_doc("abc")
        result = pipeline.process(doc)
        assert doc.content.closed
        assert result.replaced
        assert result.content == b"cba"

    def test_untouched_content_not_copied(self, text_doc):
        result = Pipeline([ScriptTagger("x = 1")]).process(text_doc("abc"))
        assert not result.replaced
        assert result.content is None

    def test_error_aborts_document_and_propagates(self, text_doc):
        calls = []
        pipeline = Pipeline([
            RecordingTagger("before", calls),
            BrokenTagger(handler_id="boom"),
            RecordingTagger("after", calls),
        ])
        doc = text_doc("x", reference="ref-1")
        with pytest.raises(HandlerExecutionError) as exc:
            pipeline.process(doc)
        assert exc.value.handler == "boom"
        assert exc.value.reference == "ref-1"
        assert isinstance(exc.value.cause, OSError)
        assert calls == ["before"]

    @pytest.mark.parametrize("handlers", [
        [],
        [FixedFilter(Verdict.EXCLUDE)],
        [BrokenTagger()],
    ])
    def test_content_released_on_every_exit(self, text_doc, handlers):
        doc = text_doc("x")
        try:
            Pipeline(handlers).process(doc)
        except HandlerExecutionError:
            pass
        assert doc.content.closed

    def test_end_to_end_html(self, alice_path):
        pipeline = Pipeline([
            DOMTagger([{"selector": "h1.chapter", "to_field": "chapter"}]),
            LanguageTagger(["en", "fr"]),
            ScriptFilter("'Wonderland' in content"),
        ])
        doc = Document.from_path(alice_path, {"document.contentType": "text/html"})
        result = pipeline.process(doc, parsed=False)
        assert not result.excluded
        assert result.metadata["chapter"] == ["Down the Rabbit-Hole", "The Pool of Tears"]
        assert result.metadata.language == "en"


class TestRunBatch:
    def _docs(self, text_doc, n=6):
        return [text_doc(f"doc {i}", reference=f"r{i}", idx=str(i)) for i in range(n)]

    def _pipeline(self):
        return Pipeline([
            ScriptTagger("1 / 0", handler_id="explode",
                         restrictions=[{"field": "idx", "pattern": "[24]"}]),
            ScriptFilter("reference != 'r3'", handler_id="drop_r3"),
            ScriptTagger("metadata.set_string('done', 'yes')", handler_id="mark"),
        ])

    @pytest.mark.parametrize("workers", [1, 3])
    def test_failures_do_not_stop_batch(self, text_doc, workers):
        docs = self._docs(text_doc)
        reports = self._pipeline().run_batch(docs, workers=workers)

        assert [r.reference for r in reports] == [f"r{i}" for i in range(6)]
        status = {r.reference: r.status for r in reports}
        assert status == {
            "r0": STATUS_INCLUDED, "r1": STATUS_INCLUDED, "r2": STATUS_ERROR,
            "r3": STATUS_EXCLUDED, "r4": STATUS_ERROR, "r5": STATUS_INCLUDED,
        }
        r2 = reports[2]
        assert r2.handler == "explode"
        assert "ZeroDivisionError" in r2.reason
        assert reports[3].handler == "drop_r3"
        assert reports[0].metadata["done"] == ["yes"]
        assert all(d.content.closed for d in docs)

    def test_summary_counts(self, text_doc):
        pipeline = self._pipeline()
        reports = pipeline.run_batch(self._docs(text_doc))
        counts = summarize(pipeline.handlers, reports)
        assert counts["explode"] == {"applied": 0, "excluded": 0, "errors": 2}
        assert counts["drop_r3"] == {"applied": 4, "excluded": 1, "errors": 0}
        assert counts["mark"]["applied"] == 3

    def test_per_document_timeout(self, text_doc):
        pipeline = Pipeline([ScriptTagger("while True:\n    x = 1\n", handler_id="spin")])
        reports = pipeline.run_batch([text_doc("x")], timeout=0.2)
        assert reports[0].status == STATUS_ERROR
        assert reports[0].handler == "spin"
        assert "timed out" in reports[0].reason

    def test_report_to_dict(self, text_doc):
        report = Pipeline([]).run_batch([text_doc("x", reference="a", k="v")])[0]
        d = report.to_dict()
        assert d["reference"] == "a"
        assert d["status"] == STATUS_INCLUDED
        assert d["metadata"] == {"k": ["v"]}
        assert d["replaced"] is False

    def test_transformed_content_reaches_report(self, text_doc):
        pipeline = Pipeline([ScriptTransformer("output.write(content.upper())")])
        doc = text_doc("shout", reference="loud")
        (report,) = pipeline.run_batch([doc])
        assert report.status == STATUS_INCLUDED
        assert report.content == b"SHOUT"
        assert report.to_dict()["replaced"] is True
        assert doc.content.closed

    def test_zero_timeout_stops_at_once(self, text_doc):
        pipeline = Pipeline([ScriptTagger("x = 1", handler_id="quick")])
        (report,) = pipeline.run_batch([text_doc("x")], timeout=0)
        assert report.status == STATUS_ERROR
        assert "timed out" in report.reason


def test_timeout_error_carries_handler(text_doc):
    pipeline = Pipeline([ScriptTagger("while True:\n    x = 1\n", timeout=0.1, handler_id="spin")])
    with pytest.raises(ScriptTimeoutError) as exc:
        pipeline.process(text_doc("x"))
    assert exc.value.handler == "spin"
