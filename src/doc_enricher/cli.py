"""CLI entrypoint.

Commands:
- `doc-enricher run --config pipeline.yaml FILE [FILE ...]`
- `doc-enricher show-config --config pipeline.yaml`

`run` feeds each file through the configured handler chain and writes one JSON line per
document (reference, status, failing/excluding handler, metadata). Files are treated
as already parsed to text unless `--pre-parse` is given. Content replaced by a
transformer is written under `--out-dir`, keeping the input file name.
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import json
import mimetypes
import os
import sys

import yaml

from .handlers.registry import handler_to_config, load_handlers
from .logging_ import setup_logging
from .pipeline.context import DOC_CONTENT_TYPE, DOC_REFERENCE, Document
from .pipeline.runner import STATUS_ERROR, Pipeline


def _make_document(path: str, content_type: Optional[str]) -> Document:
    doc = Document.from_path(path)
    doc.metadata.set_string(DOC_REFERENCE, path)
    ctype = content_type or mimetypes.guess_type(path)[0]
    if ctype:
        doc.metadata.set_string(DOC_CONTENT_TYPE, ctype)
    return doc


def _write_contents(reports, out_dir: str) -> None:
    os.makedirs(out_dir, exist_ok=True)
    for r in reports:
        if r.content is None:
            continue
        path = os.path.join(out_dir, os.path.basename(r.reference))
        with open(path, "wb") as f:
            f.write(r.content)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="doc-enricher")
    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("run")
    pr.add_argument("--config", required=True)
    pr.add_argument("files", nargs="+")
    pr.add_argument("--pre-parse", action="store_true", help="Content is in its native format (detect charset)")
    pr.add_argument("--content-type", default=None, help="Content type for all files (default: guessed from name)")
    pr.add_argument("--workers", type=int, default=1)
    pr.add_argument("--timeout", type=float, default=None, metavar="SECONDS", help="Per-document deadline")
    pr.add_argument("--out", default=None, help="Write JSON lines here instead of stdout")
    pr.add_argument("--out-dir", default=None, help="Write transformed content here, one file per document")
    pr.add_argument("--log-dir", default=None)
    pr.add_argument("--log-level", default="INFO")
    pr.add_argument("--progress", action="store_true")

    ps = sub.add_parser("show-config")
    ps.add_argument("--config", required=True)

    args = p.parse_args(argv)

    if args.cmd == "show-config":
        handlers = load_handlers(args.config)
        print(yaml.safe_dump({"handlers": [handler_to_config(h) for h in handlers]}, sort_keys=False))
        return 0

    setup_logging(log_dir=args.log_dir, level=args.log_level)
    pipeline = Pipeline(load_handlers(args.config))
    docs = [_make_document(f, args.content_type) for f in args.files]
    reports = pipeline.run_batch(
        docs, parsed=not args.pre_parse, workers=args.workers, timeout=args.timeout, progress=args.progress,
    )

    if args.out_dir:
        _write_contents(reports, args.out_dir)

    out = open(args.out, "w", encoding="utf-8") if args.out else sys.stdout
    try:
        for r in reports:
            out.write(json.dumps(r.to_dict(), ensure_ascii=False) + "\n")
    finally:
        if out is not sys.stdout:
            out.close()
    return 1 if any(r.status == STATUS_ERROR for r in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
