"""api2html のコマンドラインインターフェース。"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable

from .builder import build_documents
from .config import NEWLINE_KINDS, BuildConfig


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="API モデルから相互リンクされた HTML リファレンスを生成します")
    parser.add_argument(
        "--input",
        dest="input_path",
        type=Path,
        required=True,
        help="モデル JSON ファイル、または .api.json を含むディレクトリへのパス",
    )
    parser.add_argument("--out", dest="output_dir", type=Path, required=True, help="HTML を書き出すディレクトリ")
    parser.add_argument("--verbose", dest="verbose", action="store_true", help="進捗ログを標準出力へ表示")

    render_group = parser.add_argument_group("ページ設定")
    render_group.add_argument(
        "--newline",
        dest="newline",
        choices=NEWLINE_KINDS,
        default=None,
        help="書き出すページの改行コード (既定: crlf)",
    )
    render_group.add_argument(
        "--stylesheet",
        dest="stylesheets",
        action="append",
        default=[],
        help="追加で読み込むスタイルシートの href (複数指定可)",
    )
    render_group.add_argument(
        "--header-url",
        dest="header_url",
        type=str,
        default=None,
        help="ヘッダーロゴのリンク先 URL",
    )

    output_group = parser.add_argument_group("出力設定")
    output_group.add_argument(
        "--no-clean",
        dest="no_clean",
        action="store_true",
        help="生成前に出力ディレクトリを空にしない",
    )
    output_group.add_argument(
        "--no-assets",
        dest="no_assets",
        action="store_true",
        help="styles.css と logo.png をコピーしない",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    _validate_args(args)
    _configure_logging(args.verbose)
    config = BuildConfig.from_args(
        args.input_path,
        args.output_dir,
        stylesheets=args.stylesheets,
        clean_output=not args.no_clean,
        copy_assets=not args.no_assets,
        render_overrides=_collect_render_overrides(args),
    )
    result = build_documents(config)
    summary = {
        "pages": len(result.pages),
        "output": str(config.output.root),
        "manifest": str(result.manifest_path),
        "dangling_links": len(result.dangling_links),
    }
    print(json.dumps(summary, ensure_ascii=False))


def _validate_args(args: argparse.Namespace) -> None:
    errors: list[str] = []
    if not args.input_path.exists():
        errors.append(f"[エラー] 入力パスが見つかりません: {args.input_path}")

    if args.output_dir.exists() and not args.output_dir.is_dir():
        errors.append(f"[エラー] 出力パスがディレクトリではありません: {args.output_dir}")

    if args.header_url is not None and not args.header_url.strip():
        errors.append("[エラー] --header-url には空でない URL を指定してください。")

    if errors:
        for message in errors:
            print(message, file=sys.stderr)
        print("入力・出力パスを確認してください。", file=sys.stderr)
        raise SystemExit(2)

    args.input_path = args.input_path.resolve()
    args.output_dir = args.output_dir.resolve()


def _collect_render_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.newline is not None:
        overrides["newline"] = args.newline
    if args.header_url is not None:
        overrides["header_url"] = args.header_url.strip()
    return overrides


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


if __name__ == "__main__":
    main()
