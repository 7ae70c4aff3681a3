"""JSON 形式の API モデルファイルを読み込み、正規化済みモデルへ変換します。

入力は API Extractor の `.api.json` に倣った構造で、`excerptTokens` と
各種 `*TokenRange` によって宣言の抜粋を表します。ドキュメントコメントは
解析済みのドキュメントノード木として `docComment` に格納されている前提です。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from charset_normalizer import from_bytes as detect_charset

from .model import (
    ApiItem,
    ApiItemKind,
    ApiModel,
    DocBlock,
    DocCodeSpan,
    DocComment,
    DocErrorText,
    DocEscapedText,
    DocFencedCode,
    DocHtmlEndTag,
    DocHtmlStartTag,
    DocInlineTag,
    DocLinkTag,
    DocNode,
    DocNodeKind,
    DocParagraph,
    DocPlainText,
    DocSoftBreak,
    ExcerptToken,
    Parameter,
    ReleaseTag,
)

logger = logging.getLogger(__name__)

MODEL_FILE_SUFFIX = ".api.json"

_PARAMETERIZED_KINDS = {
    ApiItemKind.CONSTRUCTOR,
    ApiItemKind.CONSTRUCT_SIGNATURE,
    ApiItemKind.METHOD,
    ApiItemKind.METHOD_SIGNATURE,
    ApiItemKind.FUNCTION,
    ApiItemKind.CALL_SIGNATURE,
}
_STATIC_CAPABLE_KINDS = {ApiItemKind.METHOD, ApiItemKind.PROPERTY}


class ModelLoadError(RuntimeError):
    """モデルファイルの構造が想定と異なる場合に送出される例外。"""


def load_model(path: str | Path) -> ApiModel:
    """ファイルまたは `.api.json` を含むディレクトリからモデルを読み込みます。"""

    source = Path(path)
    if source.is_dir():
        files = sorted(p for p in source.iterdir() if p.is_file() and p.name.endswith(MODEL_FILE_SUFFIX))
        if not files:
            raise ModelLoadError(f"{MODEL_FILE_SUFFIX} ファイルが見つかりません: {source}")
        return load_model_files(files)
    return load_model_files([source])


def load_model_files(paths: Iterable[Path]) -> ApiModel:
    documents = []
    for path in paths:
        try:
            documents.append(json.loads(_read_local_file(path)))
        except json.JSONDecodeError as exc:
            raise ModelLoadError(f"JSON の解析に失敗しました ({path.name}: {exc.msg})") from exc
        logger.info("モデルファイルを読み込みました: %s", path.name)
    return model_from_documents(documents)


def model_from_documents(documents: Sequence[Mapping[str, Any]]) -> ApiModel:
    """Model 1 件、または Package の並びから ApiModel を構築します。"""

    if len(documents) == 1 and documents[0].get("kind") == ApiItemKind.MODEL.value:
        return ApiModel(item_from_dict(documents[0]))
    root = ApiItem(kind=ApiItemKind.MODEL, name="")
    for document in documents:
        package = item_from_dict(document)
        if package.kind is not ApiItemKind.PACKAGE:
            raise ModelLoadError(f"トップレベルには Package を指定してください: {package.kind.value}")
        root.add_member(package)
    return ApiModel(root)


def item_from_dict(data: Mapping[str, Any]) -> ApiItem:
    kind = _parse_kind(data)
    tokens = _parse_tokens(data)
    members = [item_from_dict(member) for member in data.get("members", ())]
    if kind is ApiItemKind.PACKAGE and not any(m.kind is ApiItemKind.ENTRY_POINT for m in members):
        members = [ApiItem(kind=ApiItemKind.ENTRY_POINT, name="", members=members)]
    doc_comment, param_docs = _parse_doc_comment(data.get("docComment"))

    parameters: list[Parameter] | None = None
    if kind in _PARAMETERIZED_KINDS:
        parameters = []
        for raw in data.get("parameters", ()):
            name = str(raw.get("parameterName") or raw.get("name") or "")
            parameters.append(
                Parameter(
                    name=name,
                    type_text=_range_text(tokens, raw.get("parameterTypeTokenRange")) or "",
                    doc=param_docs.get(name),
                    is_optional=bool(raw.get("isOptional", False)),
                )
            )

    is_static: bool | None = None
    if kind in _STATIC_CAPABLE_KINDS or "isStatic" in data:
        is_static = bool(data.get("isStatic", False))

    extends_range = data.get("extendsTokenRange")
    release_tag = data.get("releaseTag")
    overload_index = data.get("overloadIndex")
    return ApiItem(
        kind=kind,
        name=str(data.get("name") or ""),
        members=members,
        doc_comment=doc_comment,
        excerpt="".join(token.text for token in tokens),
        excerpt_tokens=tokens,
        release_tag=_parse_release_tag(release_tag) if release_tag is not None else None,
        is_static=is_static,
        is_event_property=bool(data.get("isEventProperty", False)),
        parameters=parameters,
        overload_index=int(overload_index) if overload_index is not None else None,
        return_type=_range_text(tokens, data.get("returnTypeTokenRange")),
        property_type=_range_text(tokens, data.get("propertyTypeTokenRange")),
        extends_tokens=_range_tokens(tokens, extends_range) if extends_range is not None else None,
        initializer=_range_text(tokens, data.get("initializerTokenRange")),
    )


def doc_nodes_from_list(raw_nodes: Iterable[Mapping[str, Any]]) -> list[DocNode]:
    return [doc_node_from_dict(raw) for raw in raw_nodes]


def doc_node_from_dict(raw: Mapping[str, Any]) -> DocNode:
    try:
        kind = DocNodeKind(raw.get("kind"))
    except ValueError as exc:
        raise ModelLoadError(f"未知のドキュメントノード種別です: {raw.get('kind')!r}") from exc
    if kind is DocNodeKind.PARAGRAPH:
        return DocParagraph(nodes=doc_nodes_from_list(raw.get("nodes", ())))
    if kind is DocNodeKind.BLOCK:
        return _parse_block(raw)
    if kind is DocNodeKind.INLINE_TAG:
        return DocInlineTag(tag_name=str(raw.get("tagName", "")), content=str(raw.get("content", "")))
    if kind is DocNodeKind.SOFT_BREAK:
        return DocSoftBreak()
    if kind is DocNodeKind.CODE_SPAN:
        return DocCodeSpan(code=str(raw.get("code", "")))
    if kind is DocNodeKind.FENCED_CODE:
        return DocFencedCode(code=str(raw.get("code", "")), language=str(raw.get("language", "")))
    if kind is DocNodeKind.ESCAPED_TEXT:
        return DocEscapedText(decoded_text=str(raw.get("decodedText", "")))
    if kind is DocNodeKind.PLAIN_TEXT:
        return DocPlainText(text=str(raw.get("text", "")))
    if kind is DocNodeKind.LINK_TAG:
        return DocLinkTag(
            url_destination=raw.get("urlDestination"),
            code_destination=raw.get("codeDestination"),
            link_text=raw.get("linkText"),
        )
    if kind is DocNodeKind.HTML_START_TAG:
        return DocHtmlStartTag(
            name=str(raw.get("name", "")),
            attributes={str(k): str(v) for k, v in (raw.get("attributes") or {}).items()},
            self_closing=bool(raw.get("selfClosing", False)),
        )
    if kind is DocNodeKind.HTML_END_TAG:
        return DocHtmlEndTag(name=str(raw.get("name", "")))
    return DocErrorText(text=str(raw.get("text", "")), error_message=str(raw.get("errorMessage", "")))


# Internal helpers -------------------------------------------------------


def _read_local_file(path: Path) -> str:
    data = path.read_bytes()
    if not data:
        return ""
    encoding = "utf-8"
    result = detect_charset(data).best()
    if result is not None and result.encoding:
        encoding = result.encoding
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        logger.debug("未知のエンコーディング %s のため UTF-8 を使用します。", encoding)
    return data.decode("utf-8", errors="replace")


def _parse_kind(data: Mapping[str, Any]) -> ApiItemKind:
    raw = data.get("kind")
    try:
        return ApiItemKind(raw)
    except ValueError as exc:
        raise ModelLoadError(f"未知のエンティティ種別です: {raw!r} (name={data.get('name')!r})") from exc


def _parse_release_tag(raw: Any) -> ReleaseTag:
    try:
        return ReleaseTag(raw)
    except ValueError as exc:
        raise ModelLoadError(f"未知のリリースタグです: {raw!r}") from exc


def _parse_tokens(data: Mapping[str, Any]) -> list[ExcerptToken]:
    raw_tokens = data.get("excerptTokens")
    if raw_tokens is None:
        excerpt = data.get("excerpt")
        return [ExcerptToken(kind="Content", text=str(excerpt))] if excerpt else []
    return [ExcerptToken(kind=str(raw.get("kind", "Content")), text=str(raw.get("text", ""))) for raw in raw_tokens]


def _range_tokens(tokens: Sequence[ExcerptToken], token_range: Mapping[str, Any]) -> list[ExcerptToken]:
    start = int(token_range.get("startIndex", 0))
    end = int(token_range.get("endIndex", start))
    if start < 0 or end > len(tokens) or start > end:
        raise ModelLoadError(f"トークン範囲が不正です: {start}..{end} (トークン数 {len(tokens)})")
    return list(tokens[start:end])


def _range_text(tokens: Sequence[ExcerptToken], token_range: Mapping[str, Any] | None) -> str | None:
    if token_range is None:
        return None
    return "".join(token.text for token in _range_tokens(tokens, token_range))


def _parse_block(raw: Mapping[str, Any], default_tag: str = "") -> DocBlock:
    return DocBlock(
        tag_name=str(raw.get("tagName", default_tag)),
        nodes=doc_nodes_from_list(raw.get("nodes", ())),
    )


def _parse_doc_comment(raw: Any) -> tuple[DocComment | None, dict[str, DocBlock]]:
    if raw is None or raw == "":
        return None, {}
    if isinstance(raw, str):
        raise ModelLoadError("docComment は解析済みのノード木 (オブジェクト) で指定してください。")

    def optional_block(key: str, tag_name: str) -> DocBlock | None:
        nodes = raw.get(key)
        if nodes is None:
            return None
        return DocBlock(tag_name=tag_name, nodes=doc_nodes_from_list(nodes))

    comment = DocComment(
        summary=doc_nodes_from_list(raw.get("summary", ())),
        remarks=optional_block("remarks", "@remarks"),
        returns=optional_block("returns", "@returns"),
        deprecated=optional_block("deprecated", "@deprecated"),
        custom_blocks=[_parse_block(block) for block in raw.get("customBlocks", ())],
    )
    params = {
        str(block.get("name", "")): _parse_block(block, default_tag="@param")
        for block in raw.get("params", ())
    }
    return comment, params
