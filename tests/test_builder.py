from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from api2html.builder import ASSET_NAMES, build_documents
from api2html.config import BuildConfig, OutputConfig, RenderConfig
from api2html.markup import StructureError


def _write_model(input_dir: Path, *, broken: bool = False) -> Path:
    input_dir.mkdir(parents=True, exist_ok=True)
    summary = [{"kind": "Paragraph", "nodes": [{"kind": "PlainText", "text": "描画用の部品です。"}]}]
    if broken:
        summary = [
            {"kind": "HtmlStartTag", "name": "b"},
            {"kind": "PlainText", "text": "x"},
            {"kind": "HtmlEndTag", "name": "i"},
        ]
    document = {
        "kind": "Package",
        "name": "@acme/widgets",
        "members": [
            {
                "kind": "Class",
                "name": "Widget",
                "excerpt": "export declare class Widget",
                "docComment": {
                    "summary": summary,
                    "remarks": [
                        {"kind": "LinkTag", "codeDestination": "Gadget", "linkText": "Gadget"},
                        {"kind": "LinkTag", "codeDestination": "Nowhere"},
                    ],
                },
                "members": [
                    {"kind": "Property", "name": "size", "excerpt": "size: number;"},
                ],
            },
            {"kind": "Interface", "name": "Gadget", "excerpt": "export interface Gadget"},
        ],
    }
    path = input_dir / "widgets.api.json"
    path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
    return path


def _config(tmp_path: Path, **kwargs) -> BuildConfig:
    return BuildConfig(
        input_path=_write_model(tmp_path / "input"),
        output=OutputConfig(tmp_path / "output"),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        **kwargs,
    )


def test_build_documents_writes_pages_manifest_and_logs(tmp_path: Path) -> None:
    config = _config(tmp_path)

    result = build_documents(config)

    output_dir = tmp_path / "output"
    assert [page.filename for page in result.pages] == [
        "widgets.widget.size.html",
        "widgets.widget.html",
        "widgets.gadget.html",
        "widgets.html",
        "index.html",
    ]
    for page in result.pages:
        assert (output_dir / page.filename).exists()
    for name in ASSET_NAMES:
        assert (output_dir / name).exists()
    assert result.dangling_links == []

    manifest = json.loads(result.manifest_path.read_text(encoding="utf-8"))
    assert manifest["created_at"] == "2025-01-01T00:00:00+0000"
    assert [entry["filename"] for entry in manifest["pages"]][-1] == "index.html"
    # single-row member tables are omitted, so only the index is reachable
    assert manifest["unreachable_pages"] == [
        "widgets.gadget.html",
        "widgets.html",
        "widgets.widget.html",
        "widgets.widget.size.html",
    ]
    widget_entry = next(entry for entry in manifest["pages"] if entry["filename"] == "widgets.widget.html")
    assert widget_entry["kind"] == "Class"
    assert widget_entry["title"] == "Widget class"
    assert "widgets.gadget.html" in widget_entry["links"]

    log_path = output_dir / "logs" / "build_summary.json"
    events = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines() if line.strip()]
    assert [event["stage"] for event in events] == ["prepared"] + ["generating"] * 5 + ["completed"]
    assert events[0]["packages"] == 1
    assert events[1]["last_page"] == "widgets.widget.size.html"
    assert events[-1]["pages"] == 5
    assert events[-1]["input_path"] == str(config.input_path)


def test_build_uses_crlf_by_default(tmp_path: Path) -> None:
    build_documents(_config(tmp_path))

    content = (tmp_path / "output" / "index.html").read_bytes()
    assert b"\r\n" in content
    assert b"\n" not in content.replace(b"\r\n", b"")


def test_build_writes_lf_when_configured(tmp_path: Path) -> None:
    build_documents(_config(tmp_path, render=RenderConfig(newline="lf")))

    content = (tmp_path / "output" / "index.html").read_bytes()
    assert content.startswith(b"<!DOCTYPE html>\n")
    assert b"\r\n" not in content


def test_build_logs_unresolved_reference(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    build_documents(_config(tmp_path))

    warnings = [record.getMessage() for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "Nowhere" in warnings[0]
    assert any("パッケージ @acme/widgets を出力しています。" in record.getMessage() for record in caplog.records)
    page = (tmp_path / "output" / "widgets.widget.html").read_text(encoding="utf-8")
    assert 'href="./widgets.gadget.html"' in page


def test_build_cleans_output_unless_disabled(tmp_path: Path) -> None:
    output_dir = tmp_path / "output"
    stale_dir = output_dir / "old"
    stale_dir.mkdir(parents=True)
    (stale_dir / "page.html").write_text("stale", encoding="utf-8")
    (output_dir / "keep.txt").write_text("stale", encoding="utf-8")

    build_documents(_config(tmp_path, clean_output=False, copy_assets=False))

    assert (output_dir / "keep.txt").exists()
    assert not (output_dir / "styles.css").exists()

    build_documents(_config(tmp_path))

    assert not (output_dir / "keep.txt").exists()
    assert not stale_dir.exists()
    assert (output_dir / "styles.css").exists()
    assert (output_dir / "index.html").exists()


def test_build_aborts_on_structure_error(tmp_path: Path) -> None:
    config = BuildConfig(
        input_path=_write_model(tmp_path / "input", broken=True),
        output=OutputConfig(tmp_path / "output"),
    )

    with pytest.raises(StructureError):
        build_documents(config)

    assert not (tmp_path / "output" / "widgets.widget.html").exists()
    assert not (tmp_path / "output" / "manifest.json").exists()
