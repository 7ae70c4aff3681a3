"""エンティティから出力ファイル名・リンク・パンくずを導出するユーティリティ。"""

from __future__ import annotations

import re

from .model import ApiItem, ApiItemKind, ApiModel, ResolutionResult

INDEX_FILENAME = "index.html"

_BAD_FILENAME_CHARS = re.compile(r"[^a-z0-9_\-.]", re.IGNORECASE)
_HIDDEN_KINDS = (ApiItemKind.MODEL, ApiItemKind.ENTRY_POINT)


def safe_filename(name: str) -> str:
    return _BAD_FILENAME_CHARS.sub("_", name).lower()


def unscoped_package_name(name: str) -> str:
    """`@scope/pkg` を `pkg` に変換します。"""

    if name.startswith("@") and "/" in name:
        return name.split("/", 1)[1]
    return name


def concise_signature(item: ApiItem) -> str:
    if item.parameters is not None:
        return f"{item.name}({', '.join(parameter.name for parameter in item.parameters)})"
    return item.name


class ReferenceResolver:
    """エンティティを安定した相対ファイル名へ写像します。

    ファイル名は階層パスのみから決まる純粋関数で、Model は常に
    `index.html`、Package はパスの起点となり、同名の関数は 2 番目以降の
    オーバーロードに `_<index - 1>` の接尾辞が付きます。
    """

    def __init__(self, model: ApiModel) -> None:
        self._model = model

    def filename_for(self, item: ApiItem) -> str:
        if item.kind is ApiItemKind.MODEL:
            return INDEX_FILENAME
        base_name = ""
        for hierarchy_item in item.hierarchy:
            if hierarchy_item.kind in _HIDDEN_KINDS:
                continue
            if hierarchy_item.kind is ApiItemKind.PACKAGE:
                base_name = safe_filename(unscoped_package_name(hierarchy_item.name))
                continue
            qualified_name = safe_filename(hierarchy_item.name)
            if hierarchy_item.has_parameters and (hierarchy_item.overload_index or 1) > 1:
                qualified_name += f"_{hierarchy_item.overload_index - 1}"
            base_name += "." + qualified_name
        return base_name + ".html"

    def link_for(self, item: ApiItem) -> str:
        return "./" + self.filename_for(item)

    def home_link(self) -> str:
        return self.link_for(self._model.root)

    def breadcrumb_trail(self, item: ApiItem) -> list[tuple[str, str]]:
        return [
            (hierarchy_item.name, self.link_for(hierarchy_item))
            for hierarchy_item in item.hierarchy
            if hierarchy_item.kind not in _HIDDEN_KINDS
        ]

    def resolve_symbolic_reference(self, reference: str, context: ApiItem) -> ResolutionResult:
        return self._model.resolve_declaration_reference(reference, context)
