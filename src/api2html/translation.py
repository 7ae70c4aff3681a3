"""ドキュメントコメントのノード木をマークアップノードへ変換します。"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from .markup import MarkupBuilder, MarkupNode, a, tag
from .model import (
    ApiItem,
    DocBlock,
    DocCodeSpan,
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
)
from .references import ReferenceResolver

VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)


class UnsupportedDocNodeError(RuntimeError):
    """変換方法が定義されていないドキュメントノードに遭遇した際の例外。"""

    def __init__(self, kind: object) -> None:
        label = getattr(kind, "value", kind)
        super().__init__(f"未対応のドキュメントノード種別です: {label}")
        self.kind = kind


class DocNodeTranslator:
    """ドキュメントノード列を順序を保ったままマークアップノード列へ変換します。

    生の HTML 開始/終了タグはビルダーのスタックへそのまま積み降ろしされ、
    対応が崩れていれば StructureError が呼び出し元へ伝播します。
    シンボル参照が解決できない場合は警告を 1 行記録し、リンクを出力しません。
    """

    def __init__(self, resolver: ReferenceResolver, logger: logging.Logger | None = None) -> None:
        self._resolver = resolver
        self._logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._handlers: dict[DocNodeKind, Callable[..., None]] = {
            DocNodeKind.PARAGRAPH: self._paragraph,
            DocNodeKind.BLOCK: self._block,
            DocNodeKind.INLINE_TAG: self._inline_tag,
            DocNodeKind.SOFT_BREAK: self._soft_break,
            DocNodeKind.CODE_SPAN: self._code_span,
            DocNodeKind.FENCED_CODE: self._fenced_code,
            DocNodeKind.ESCAPED_TEXT: self._escaped_text,
            DocNodeKind.PLAIN_TEXT: self._plain_text,
            DocNodeKind.LINK_TAG: self._link_tag,
            DocNodeKind.HTML_START_TAG: self._html_start_tag,
            DocNodeKind.HTML_END_TAG: self._html_end_tag,
        }

    def translate(self, nodes: Sequence[DocNode], context: ApiItem) -> list[MarkupNode]:
        builder = MarkupBuilder()
        for node in nodes:
            handler = self._handlers.get(node.kind)
            if handler is None:
                raise UnsupportedDocNodeError(node.kind)
            handler(builder, node, context)
        return builder.finish()

    def first_node(self, nodes: Sequence[DocNode], context: ApiItem) -> MarkupNode | None:
        translated = self.translate(nodes, context)
        return translated[0] if translated else None

    # Handlers ---------------------------------------------------------

    def _paragraph(self, builder: MarkupBuilder, node: DocParagraph, context: ApiItem) -> None:
        builder.append_child(tag("p", self.translate(node.nodes, context)))

    def _block(self, builder: MarkupBuilder, node: DocBlock, context: ApiItem) -> None:
        builder.append_child(tag("div", self.translate(node.nodes, context)))

    def _inline_tag(self, builder: MarkupBuilder, node: DocInlineTag, context: ApiItem) -> None:
        # Tag parameters are intentionally not rendered.
        builder.append_child(tag("span", node.tag_name))

    def _soft_break(self, builder: MarkupBuilder, node: DocNode, context: ApiItem) -> None:
        return None

    def _code_span(self, builder: MarkupBuilder, node: DocCodeSpan, context: ApiItem) -> None:
        builder.append_child(tag("code", node.code))

    def _fenced_code(self, builder: MarkupBuilder, node: DocFencedCode, context: ApiItem) -> None:
        builder.append_child(tag("pre", node.code))

    def _escaped_text(self, builder: MarkupBuilder, node: DocEscapedText, context: ApiItem) -> None:
        builder.append_child(tag("span", node.decoded_text))

    def _plain_text(self, builder: MarkupBuilder, node: DocPlainText, context: ApiItem) -> None:
        builder.append_child(tag("span", node.text))

    def _link_tag(self, builder: MarkupBuilder, node: DocLinkTag, context: ApiItem) -> None:
        if node.url_destination:
            builder.append_child(a(node.link_text or node.url_destination, node.url_destination))
            return
        if not node.code_destination:
            return
        result = self._resolver.resolve_symbolic_reference(node.code_destination, context)
        if result.item is None:
            self._logger.warning(
                '参照 "%s" を解決できませんでした: %s',
                node.code_destination,
                result.error_message or "不明なエラー",
            )
            return
        text = node.link_text or result.item.scoped_name
        builder.append_child(a(text, self._resolver.link_for(result.item)))

    def _html_start_tag(self, builder: MarkupBuilder, node: DocHtmlStartTag, context: ApiItem) -> None:
        # Attributes of raw tags are not propagated.
        if node.self_closing or node.name.lower() in VOID_ELEMENTS:
            builder.append_child(tag(node.name))
            return
        builder.open_node(tag(node.name, []))

    def _html_end_tag(self, builder: MarkupBuilder, node: DocHtmlEndTag, context: ApiItem) -> None:
        # void elements were never opened
        if node.name.lower() in VOID_ELEMENTS:
            return
        builder.close_node(node.name)
