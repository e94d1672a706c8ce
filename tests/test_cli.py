"""
Tests for the command line entrypoint.
"""

import json

import yaml

from doc_enricher.cli import main

CONFIG = """
handlers:
  - type: dom_tagger
    extractions:
      - {selector: "h1.chapter", to_field: chapter}
  - type: script_filter
    id: drop_drafts
    script: |
      "DRAFT" not in content
  - type: script_tagger
    id: explode
    restrictions:
      - {field: document.reference, pattern: ".*broken.*"}
    script: |
      1 / 0
"""


def _write_inputs(tmp_path, alice_html):
    config = tmp_path / "pipeline.yaml"
    config.write_text(CONFIG, encoding="utf-8")
    alice = tmp_path / "alice.html"
    alice.write_text(alice_html, encoding="utf-8")
    draft = tmp_path / "draft.txt"
    draft.write_text("DRAFT notes", encoding="utf-8")
    return config, alice, draft


def test_run_writes_one_line_per_document(tmp_path, alice_html):
    config, alice, draft = _write_inputs(tmp_path, alice_html)
    out = tmp_path / "out" / "reports.jsonl"
    out.parent.mkdir()

    code = main(["run", "--config", str(config), str(alice), str(draft), "--out", str(out)])

    assert code == 0
    lines = [json.loads(l) for l in out.read_text(encoding="utf-8").splitlines()]
    assert [l["reference"] for l in lines] == [str(alice), str(draft)]
    first, second = lines
    assert first["status"] == "included"
    assert first["metadata"]["document.contentType"] == ["text/html"]
    assert len(first["metadata"]["chapter"]) == 2
    assert second["status"] == "excluded"
    assert second["handler"] == "drop_drafts"
    assert "chapter" not in second["metadata"]


def test_run_exit_code_on_failure(tmp_path, alice_html):
    config, _, _ = _write_inputs(tmp_path, alice_html)
    broken = tmp_path / "broken.txt"
    broken.write_text("fine text", encoding="utf-8")
    out = tmp_path / "reports.jsonl"

    code = main(["run", "--config", str(config), str(broken), "--out", str(out)])

    assert code == 1
    (line,) = [json.loads(l) for l in out.read_text(encoding="utf-8").splitlines()]
    assert line["status"] == "error"
    assert line["handler"] == "explode"
    assert "ZeroDivisionError" in line["reason"]


def test_content_type_override(tmp_path, alice_html):
    config, _, draft = _write_inputs(tmp_path, alice_html)
    out = tmp_path / "reports.jsonl"
    main(["run", "--config", str(config), str(draft), "--content-type", "text/plain", "--out", str(out)])
    (line,) = [json.loads(l) for l in out.read_text(encoding="utf-8").splitlines()]
    assert line["metadata"]["document.contentType"] == ["text/plain"]


def test_show_config(tmp_path, alice_html, capsys):
    config, _, _ = _write_inputs(tmp_path, alice_html)
    assert main(["show-config", "--config", str(config)]) == 0
    dumped = yaml.safe_load(capsys.readouterr().out)
    types = [h["type"] for h in dumped["handlers"]]
    assert types == ["dom_tagger", "script_filter", "script_tagger"]
    assert dumped["handlers"][1]["id"] == "drop_drafts"
    assert dumped["handlers"][0]["restrictions"]


def test_out_dir_receives_transformed_content(tmp_path):
    config = tmp_path / "pipeline.yaml"
    config.write_text(
        "handlers:\n"
        "  - type: script_transformer\n"
        "    restrictions:\n"
        "      - {field: document.reference, pattern: \".*shout.*\"}\n"
        "    script: |\n"
        "      output.write(content.upper())\n",
        encoding="utf-8",
    )
    shout = tmp_path / "shout.txt"
    shout.write_text("make it loud", encoding="utf-8")
    quiet = tmp_path / "quiet.txt"
    quiet.write_text("leave me", encoding="utf-8")
    out_dir = tmp_path / "transformed"
    out = tmp_path / "reports.jsonl"

    code = main(["run", "--config", str(config), str(shout), str(quiet),
                 "--out", str(out), "--out-dir", str(out_dir)])

    assert code == 0
    assert (out_dir / "shout.txt").read_bytes() == b"MAKE IT LOUD"
    assert not (out_dir / "quiet.txt").exists()
    replaced = [json.loads(l)["replaced"] for l in out.read_text(encoding="utf-8").splitlines()]
    assert replaced == [True, False]
