"""API モデルを HTML ページ群へ変換するための中核オーケストレーター。"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import BuildConfig
from .document import GeneratedPage, PageGraphGenerator
from .graphing import DanglingLink, PageGraph
from .loading import load_model
from .manifest import build_manifest, write_manifest

ASSETS_DIR = Path(__file__).resolve().parent / "assets"
ASSET_NAMES = ("styles.css", "logo.png")


@dataclass(slots=True)
class BuildResult:
    pages: list[GeneratedPage]
    dangling_links: list[DanglingLink]
    manifest_path: Path


class Api2HtmlBuilder:
    """モデル読み込み・ページ生成・出力を統括する高レベルパイプライン。"""

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self._logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
        self._summary_base = {
            "input_path": str(config.input_path),
            "output_dir": str(config.output.root),
            "created_at": config.created_at.isoformat(),
        }
        self._summary_path = config.output.logs_dir / "build_summary.json"

    def build(self) -> BuildResult:
        model = load_model(self.config.input_path)
        self._logger.info("パッケージを %d 件読み込みました。", len(model.packages))

        self._prepare_output()
        self._prepare_logging_resources()
        self._update_summary("prepared", packages=len(model.packages))
        if self.config.copy_assets:
            self._copy_assets()

        generator = PageGraphGenerator(
            model,
            self._write_page,
            self.config.render,
            progress=self._report_progress,
        )
        pages = generator.generate()
        self._logger.info("ページ生成が完了しました (%d 件)。", len(pages))

        graph = PageGraph(pages)
        dangling = graph.dangling_links()
        if dangling:
            samples = ", ".join(f"{link.source} -> {link.target}" for link in dangling[:3])
            self._logger.warning(
                "出力されていないページへのリンクが %d 件あります。サンプル: %s",
                len(dangling),
                samples,
            )

        manifest = build_manifest(pages, graph, self.config.created_at)
        write_manifest(self.config.output.manifest_path, manifest)
        self._logger.info("manifest.json を出力しました。")
        self._update_summary(
            "completed",
            pages=len(pages),
            dangling_links=len(dangling),
            manifest=str(self.config.output.manifest_path),
        )
        return BuildResult(
            pages=pages,
            dangling_links=dangling,
            manifest_path=self.config.output.manifest_path,
        )

    def _prepare_output(self) -> None:
        root = self.config.output.root
        if self.config.clean_output and root.exists():
            self._logger.info("古い出力を削除します: %s", root)
            for child in root.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        root.mkdir(parents=True, exist_ok=True)

    def _copy_assets(self) -> None:
        for name in ASSET_NAMES:
            shutil.copyfile(ASSETS_DIR / name, self.config.output.root / name)
        self._logger.info("静的ファイルをコピーしました: %s", ", ".join(ASSET_NAMES))

    def _write_page(self, filename: str, content: str) -> None:
        path = self.config.output.root / filename
        path.write_text(content, encoding="utf-8", newline=self.config.render.newline_sequence)

    def _prepare_logging_resources(self) -> None:
        self.config.output.logs_dir.mkdir(parents=True, exist_ok=True)
        self._summary_path.write_text("", encoding="utf-8")

    def _report_progress(self, current: int, page: GeneratedPage) -> None:
        self._update_summary(
            "generating",
            written=current,
            last_page=page.filename,
            kind=page.kind.value,
        )

    def _update_summary(self, stage: str, **extra: Any) -> None:
        payload = dict(self._summary_base)
        payload.update(extra)
        payload["stage"] = stage
        self._summary_path.parent.mkdir(parents=True, exist_ok=True)
        with self._summary_path.open("a", encoding="utf-8") as stream:
            stream.write(json.dumps(payload, ensure_ascii=False))
            stream.write("\n")


def build_documents(config: BuildConfig) -> BuildResult:
    builder = Api2HtmlBuilder(config)
    return builder.build()
