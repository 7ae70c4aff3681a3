"""api2html パイプラインの設定モデル群。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

NEWLINE_KINDS = ("lf", "crlf", "os")
DEFAULT_STYLESHEET = "styles.css"


def _merge_stylesheets(defaults: Sequence[str], extras: Sequence[str]) -> tuple[str, ...]:
    """既定のスタイルシートと追加指定を順序を保って結合します (重複は除外)。"""

    seen: set[str] = set()
    merged: list[str] = []
    for href in (*defaults, *extras):
        if href in seen:
            continue
        seen.add(href)
        merged.append(href)
    return tuple(merged)


def default_timestamp() -> datetime:
    """メタデータ用に現在時刻 (UTC) を返します。"""

    return datetime.now(timezone.utc)


@dataclass(slots=True)
class RenderConfig:
    """ページ組み立てと書き出しの設定。"""

    stylesheets: Sequence[str] = (DEFAULT_STYLESHEET,)
    header_url: str = "./index.html"
    newline: str = "crlf"

    def __post_init__(self) -> None:
        if self.newline not in NEWLINE_KINDS:
            raise ValueError(f"newline には {', '.join(NEWLINE_KINDS)} のいずれかを指定してください: {self.newline}")

    @property
    def newline_sequence(self) -> str | None:
        """`Path.write_text(newline=...)` に渡す値。"os" の場合は None。"""

        if self.newline == "lf":
            return "\n"
        if self.newline == "crlf":
            return "\r\n"
        return None


@dataclass(slots=True)
class OutputConfig:
    """出力ディレクトリの設定。"""

    root: Path
    logs_dir: Path = field(init=False)
    manifest_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.logs_dir = self.root / "logs"
        self.manifest_path = self.root / "manifest.json"


@dataclass(slots=True)
class BuildConfig:
    """ドキュメント生成全体を束ねる設定。"""

    input_path: Path
    output: OutputConfig
    render: RenderConfig = field(default_factory=RenderConfig)
    clean_output: bool = True
    copy_assets: bool = True
    created_at: datetime = field(default_factory=default_timestamp)

    @classmethod
    def from_args(
        cls,
        input_path: Path,
        output_dir: Path,
        stylesheets: Optional[Iterable[str]] = None,
        clean_output: bool = True,
        copy_assets: bool = True,
        render_overrides: Mapping[str, Any] | None = None,
    ) -> "BuildConfig":
        render_kwargs: dict[str, Any] = dict(render_overrides) if render_overrides else {}
        extras = tuple(href.strip() for href in (stylesheets or ()) if href and href.strip())
        if extras:
            render_kwargs["stylesheets"] = _merge_stylesheets(RenderConfig().stylesheets, extras)
        return cls(
            input_path=input_path,
            output=OutputConfig(output_dir),
            render=RenderConfig(**render_kwargs),
            clean_output=clean_output,
            copy_assets=copy_assets,
        )
