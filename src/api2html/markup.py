"""HTML 相当のマークアップツリーを組み立てるためのスタック型ビルダー。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence, Union

MarkupContent = Union[list["MarkupNode"], str, None]


class StructureError(RuntimeError):
    """開始タグと終了タグの対応が崩れた際に送出される例外。"""


@dataclass(slots=True)
class MarkupNode:
    """タグ名・属性・内容 (子ノード列 / テキスト / なし) を持つノード。"""

    kind: str
    attributes: dict[str, str] = field(default_factory=dict)
    content: MarkupContent = None

    @property
    def is_block(self) -> bool:
        return isinstance(self.content, list)

    @property
    def children(self) -> list["MarkupNode"]:
        if isinstance(self.content, list):
            return self.content
        return []


def tag(
    kind: str,
    content: MarkupContent = None,
    class_name: str | None = None,
    **attributes: str,
) -> MarkupNode:
    """ノードを生成します。`class_name` は class 属性として先頭に置かれます。"""

    attrs: dict[str, str] = {}
    if class_name:
        attrs["class"] = class_name
    attrs.update(attributes)
    return MarkupNode(kind=kind, attributes=attrs, content=content)


def a(text: str, href: str, class_name: str | None = None) -> MarkupNode:
    return tag("a", text, class_name=class_name, href=href)


def table(headings: Sequence[str]) -> MarkupNode:
    """見出し行のみを持つテーブルを返します。行は `content` へ直接追加します。"""

    return tag("table", [tag("thead", [tag("tr", [tag("th", heading) for heading in headings])])])


def tr(cells: Sequence[str | MarkupNode]) -> MarkupNode:
    return tag(
        "tr",
        [tag("td", cell) if isinstance(cell, str) else tag("td", [cell]) for cell in cells],
    )


def row_count(table_node: MarkupNode) -> int:
    """見出し (thead) を除いたデータ行数。"""

    return sum(1 for child in table_node.children if child.kind == "tr")


class MarkupBuilder:
    """開いているブロックノードのスタックを保持し、整形式のツリーを組み立てます。

    スタックの底には常に合成ルートがあり、先頭が現在の挿入位置です。
    `close_node` は先頭ノードのタグ名と照合し、食い違えば StructureError を
    送出します。失敗時にスタックは変更されません。
    """

    def __init__(self, root_kind: str = "body") -> None:
        self._stack: list[MarkupNode] = [MarkupNode(kind=root_kind, content=[])]
        self._styles: list[str] = []

    @property
    def current(self) -> MarkupNode:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        """合成ルートより上で開いたままのノード数。"""

        return len(self._stack) - 1

    @property
    def styles(self) -> tuple[str, ...]:
        return tuple(self._styles)

    def add_style(self, href: str) -> None:
        self._styles.append(href)

    def append_child(self, node: MarkupNode) -> None:
        self.current.children.append(node)

    def open_node(self, node: MarkupNode, fn: Callable[["MarkupBuilder"], None] | None = None) -> None:
        if not node.is_block:
            raise StructureError(f"子ノードを持てないノードは開けません: <{node.kind}>")
        self.current.children.append(node)
        self._stack.append(node)
        if fn is not None:
            fn(self)
            self.close_node(node.kind)

    def close_node(self, expected_kind: str) -> None:
        top = self.current
        if top.kind != expected_kind:
            raise StructureError(
                f"終了タグが一致しません。期待値: {top.kind} 実際: {expected_kind}"
            )
        if len(self._stack) == 1:
            raise StructureError(f"対応する開始タグがありません: {expected_kind}")
        self._stack.pop()

    def finish(self) -> list[MarkupNode]:
        """開いたノードが残っていないことを確認し、ルート直下のノード列を返します。"""

        if self.depth:
            unclosed = ", ".join(node.kind for node in self._stack[1:])
            raise StructureError(f"閉じられていないタグがあります: {unclosed}")
        return self.root().children

    def root(self) -> MarkupNode:
        return self._stack[0]

    def emit(self) -> str:
        from .rendering import render_document

        return render_document(self.root(), self.styles)
