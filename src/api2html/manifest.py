"""マニフェスト生成ユーティリティ。"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from .document import GeneratedPage
from .graphing import PageGraph

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


@dataclass(slots=True)
class PageEntry:
    filename: str
    kind: str
    title: str
    items: list[str]
    links: list[str]


@dataclass(slots=True)
class LinkEntry:
    source: str
    target: str


@dataclass(slots=True)
class Manifest:
    created_at: str
    pages: list[PageEntry]
    dangling_links: list[LinkEntry]
    unreachable_pages: list[str]

    def to_json(self) -> str:
        return json.dumps(
            {
                "created_at": self.created_at,
                "pages": [asdict(page) for page in self.pages],
                "dangling_links": [asdict(link) for link in self.dangling_links],
                "unreachable_pages": list(self.unreachable_pages),
            },
            ensure_ascii=False,
            indent=2,
        )


def build_manifest(pages: Sequence[GeneratedPage], graph: PageGraph, created_at: datetime) -> Manifest:
    page_entries = [
        PageEntry(
            filename=page.filename,
            kind=page.kind.value,
            title=page.title,
            items=list(page.items),
            links=list(page.links),
        )
        for page in pages
    ]
    dangling = [LinkEntry(source=link.source, target=link.target) for link in graph.dangling_links()]
    return Manifest(
        created_at=created_at.strftime(ISO_FORMAT),
        pages=page_entries,
        dangling_links=dangling,
        unreachable_pages=graph.unreachable_pages(),
    )


def write_manifest(path: Path, manifest: Manifest) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(manifest.to_json(), encoding="utf-8")
