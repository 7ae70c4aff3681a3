"""生成済みページ間のリンクグラフを構築するユーティリティ。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import networkx as nx

from .document import GeneratedPage


@dataclass(slots=True)
class DanglingLink:
    """書き出されていないページを指すリンク。"""

    source: str
    target: str


class PageGraph:
    """ページをノード、相対リンクを有向辺とするグラフ。"""

    def __init__(self, pages: Iterable[GeneratedPage] = ()) -> None:
        self._graph = nx.DiGraph()
        for page in pages:
            self.add_page(page)

    @property
    def graph(self) -> nx.DiGraph:
        return self._graph

    def add_page(self, page: GeneratedPage) -> None:
        self._graph.add_node(page.filename, generated=True, kind=page.kind.value, title=page.title)
        for target in page.links:
            if target == page.filename:
                continue
            if target not in self._graph:
                self._graph.add_node(target, generated=False)
            self._graph.add_edge(page.filename, target)

    def pages(self) -> list[str]:
        return sorted(node for node, generated in self._graph.nodes(data="generated") if generated)

    def dangling_links(self) -> list[DanglingLink]:
        missing = {node for node, generated in self._graph.nodes(data="generated") if not generated}
        return [
            DanglingLink(source=source, target=target)
            for source, target in sorted(self._graph.edges())
            if target in missing
        ]

    def unreachable_pages(self, start: str = "index.html") -> list[str]:
        """`start` から辿れない生成済みページ。"""

        if start not in self._graph:
            return self.pages()
        reachable = nx.descendants(self._graph, start) | {start}
        return [page for page in self.pages() if page not in reachable]
