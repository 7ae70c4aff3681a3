from __future__ import annotations

from pathlib import Path

import pytest

from api2html.config import BuildConfig, RenderConfig


def test_from_args_merges_stylesheets_without_duplicates(tmp_path: Path) -> None:
    config = BuildConfig.from_args(
        input_path=tmp_path / "model.api.json",
        output_dir=tmp_path / "output",
        stylesheets=["theme.css", " styles.css ", "", "theme.css"],
    )

    assert config.render.stylesheets == ("styles.css", "theme.css")


def test_from_args_accepts_render_overrides(tmp_path: Path) -> None:
    config = BuildConfig.from_args(
        input_path=tmp_path,
        output_dir=tmp_path / "output",
        clean_output=False,
        copy_assets=False,
        render_overrides={"newline": "lf", "header_url": "https://example.com/docs"},
    )

    assert config.render.newline_sequence == "\n"
    assert config.render.header_url == "https://example.com/docs"
    assert config.render.stylesheets == ("styles.css",)
    assert config.clean_output is False
    assert config.copy_assets is False
    assert config.output.logs_dir == tmp_path / "output" / "logs"
    assert config.output.manifest_path == tmp_path / "output" / "manifest.json"


def test_render_config_defaults_to_crlf() -> None:
    render = RenderConfig()

    assert render.newline == "crlf"
    assert render.newline_sequence == "\r\n"
    assert RenderConfig(newline="os").newline_sequence is None


def test_render_config_rejects_unknown_newline() -> None:
    with pytest.raises(ValueError):
        RenderConfig(newline="cr")
