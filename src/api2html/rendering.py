"""マークアップツリーを HTML テキストへ変換するシリアライザー。"""

from __future__ import annotations

from typing import Iterable

from bs4 import BeautifulSoup, Doctype, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from .markup import MarkupNode


class _InsertionOrderFormatter(HTMLFormatter):
    """属性を追加順のまま出力するフォーマッター (既定の formatter はキー順に並べ替える)。"""

    def __init__(self) -> None:
        super().__init__(entity_substitution=EntitySubstitution.substitute_xml)

    def attributes(self, tag: Tag):
        return list(tag.attrs.items())


def render_document(root: MarkupNode, styles: Iterable[str] = ()) -> str:
    """head (スタイルシートのリンク) とルートノードから HTML 文書を生成します。"""

    soup = BeautifulSoup("", "lxml")
    soup.append(Doctype("html"))
    html = soup.new_tag("html")
    soup.append(html)
    head = soup.new_tag("head")
    for href in styles:
        head.append(soup.new_tag("link", attrs={"rel": "stylesheet", "type": "text/css", "href": href}))
    html.append(head)
    html.append(_to_tag(soup, root))
    return soup.decode(formatter=_InsertionOrderFormatter())


def _to_tag(soup: BeautifulSoup, node: MarkupNode) -> Tag:
    element = soup.new_tag(node.kind, attrs=dict(node.attributes))
    if isinstance(node.content, str):
        element.string = node.content
    elif isinstance(node.content, list):
        for child in node.content:
            element.append(_to_tag(soup, child))
    return element
