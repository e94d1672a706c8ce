"""Pipeline runner.

Single document (`Pipeline.process`):
- handlers run strictly in configured order
- each handler's restrictions are checked against the metadata as left by the
  handlers before it
- the first EXCLUDE outcome stops the chain; REPLACE swaps the content stream
- a HandlerExecutionError aborts the document and propagates to the caller
- the document content is released on every exit path (unless release=False);
  replaced content is read into the result first

Batch (`Pipeline.run_batch`):
- documents are independent; with workers > 1 they run in a thread pool
- a failing document is reported (reference + failing handler) and the batch goes on
- reports carry the replacement bytes of transformed documents
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import logging
import time

from tqdm import tqdm

from ..errors import HandlerExecutionError
from ..handlers.base import Handler
from .cancel import CancellationToken
from .context import Document, Metadata, OutcomeKind

log = logging.getLogger("doc_enricher.pipeline")

STATUS_INCLUDED = "included"
STATUS_EXCLUDED = "excluded"
STATUS_ERROR = "error"


@dataclass
class PipelineResult:
    reference: str
    metadata: Metadata
    excluded: bool = False
    excluded_by: Optional[str] = None
    replaced: bool = False
    applied: List[str] = field(default_factory=list)
    # replacement bytes, read before the document is released
    content: Optional[bytes] = None


@dataclass
class DocumentReport:
    reference: str
    status: str
    handler: Optional[str] = None
    reason: str = ""
    applied: List[str] = field(default_factory=list)
    metadata: Dict[str, List[str]] = field(default_factory=dict)
    elapsed_ms: int = 0
    content: Optional[bytes] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference": self.reference,
            "status": self.status,
            "handler": self.handler,
            "reason": self.reason,
            "applied": list(self.applied),
            "metadata": self.metadata,
            "elapsed_ms": self.elapsed_ms,
            "replaced": self.content is not None,
        }


class Pipeline:
    def __init__(self, handlers: Iterable[Handler]):
        self.handlers: List[Handler] = list(handlers)

    def process(
        self,
        doc: Document,
        parsed: bool = True,
        cancel: Optional[CancellationToken] = None,
        release: bool = True,
    ) -> PipelineResult:
        result = PipelineResult(reference=doc.reference, metadata=doc.metadata)
        try:
            for handler in self.handlers:
                if not handler.applies(doc.metadata):
                    log.debug(f"{doc.reference}: {handler.id} does not apply")
                    continue
                outcome = handler.execute(doc, parsed, cancel)
                result.applied.append(handler.id)
                if outcome.kind == OutcomeKind.EXCLUDE:
                    result.excluded = True
                    result.excluded_by = handler.id
                    log.debug(f"{doc.reference}: excluded by {handler.id} {outcome.reason}")
                    break
                if outcome.kind == OutcomeKind.REPLACE:
                    doc.content.replace(outcome.content)
                    result.replaced = True
            if result.replaced:
                result.content = doc.content.read_bytes()
            return result
        finally:
            if release:
                doc.release()

    def _process_for_report(self, doc: Document, parsed: bool, timeout: Optional[float]) -> DocumentReport:
        t0 = time.monotonic()
        token = CancellationToken(timeout) if timeout is not None else None
        try:
            res = self.process(doc, parsed=parsed, cancel=token, release=True)
        except HandlerExecutionError as e:
            log.error(f"Document failed reference={doc.reference} handler={e.handler}: {e.message}")
            return DocumentReport(
                reference=doc.reference,
                status=STATUS_ERROR,
                handler=e.handler,
                reason=str(e),
                metadata=doc.metadata.to_dict(),
                elapsed_ms=int((time.monotonic() - t0) * 1000),
            )
        except Exception as e:
            log.exception(f"Unhandled error processing reference={doc.reference}: {e}")
            return DocumentReport(
                reference=doc.reference,
                status=STATUS_ERROR,
                reason=f"{type(e).__name__}: {e}",
                metadata=doc.metadata.to_dict(),
                elapsed_ms=int((time.monotonic() - t0) * 1000),
            )
        return DocumentReport(
            reference=res.reference,
            status=STATUS_EXCLUDED if res.excluded else STATUS_INCLUDED,
            handler=res.excluded_by,
            applied=res.applied,
            metadata=res.metadata.to_dict(),
            elapsed_ms=int((time.monotonic() - t0) * 1000),
            content=res.content,
        )

    def run_batch(
        self,
        docs: Iterable[Document],
        parsed: bool = True,
        *,
        workers: int = 1,
        timeout: Optional[float] = None,
        progress: bool = False,
        log_every: int = 1000,
    ) -> List[DocumentReport]:
        """Process independent documents; reports come back in input order.

        `timeout` (seconds) gives each document its own cancellation deadline.
        """
        docs = list(docs)
        reports: List[Optional[DocumentReport]] = [None] * len(docs)
        bar = tqdm(total=len(docs), desc="documents", unit="doc", disable=not progress)
        try:
            if workers <= 1:
                for i, doc in enumerate(docs):
                    reports[i] = self._process_for_report(doc, parsed, timeout)
                    bar.update(1)
                    if (i + 1) % log_every == 0:
                        log.info(f"processed={i + 1}/{len(docs)}")
            else:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    futures = {
                        pool.submit(self._process_for_report, doc, parsed, timeout): i
                        for i, doc in enumerate(docs)
                    }
                    for n, fut in enumerate(as_completed(futures), start=1):
                        reports[futures[fut]] = fut.result()
                        bar.update(1)
                        if n % log_every == 0:
                            log.info(f"processed={n}/{len(docs)}")
        finally:
            bar.close()

        done = [r for r in reports if r is not None]
        _log_summary(self.handlers, done)
        return done


def summarize(handlers: Iterable[Handler], reports: Iterable[DocumentReport]) -> Dict[str, Dict[str, int]]:
    """Per-handler counters: applied / excluded / errors."""
    counts = {h.id: {"applied": 0, "excluded": 0, "errors": 0} for h in handlers}
    for r in reports:
        for hid in r.applied:
            counts.setdefault(hid, {"applied": 0, "excluded": 0, "errors": 0})["applied"] += 1
        if r.handler and r.status == STATUS_EXCLUDED:
            counts.setdefault(r.handler, {"applied": 0, "excluded": 0, "errors": 0})["excluded"] += 1
        if r.handler and r.status == STATUS_ERROR:
            counts.setdefault(r.handler, {"applied": 0, "excluded": 0, "errors": 0})["errors"] += 1
    return counts


def _log_summary(handlers: List[Handler], reports: List[DocumentReport]) -> None:
    by_status: Dict[str, int] = {}
    for r in reports:
        by_status[r.status] = by_status.get(r.status, 0) + 1
    log.info(
        f"Batch complete: processed={len(reports)} included={by_status.get(STATUS_INCLUDED, 0)} "
        f"excluded={by_status.get(STATUS_EXCLUDED, 0)} errors={by_status.get(STATUS_ERROR, 0)}"
    )
    for hid, c in summarize(handlers, reports).items():
        log.info(f"  {hid}: applied={c['applied']} excluded={c['excluded']} errors={c['errors']}")
