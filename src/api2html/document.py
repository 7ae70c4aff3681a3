"""エンティティツリーを巡回し、ページ単位の HTML 文書を組み立てるジェネレーター。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence

from .config import RenderConfig
from .markup import MarkupBuilder, MarkupNode, a, row_count, table, tag, tr
from .model import ApiItem, ApiItemKind, ApiModel
from .references import ReferenceResolver, concise_signature, unscoped_package_name
from .translation import DocNodeTranslator

BETA_WARNING = (
    "This API is provided as a preview for developers and may change"
    " based on feedback that we receive.  Do not use this API in a production environment."
)
DEPRECATED_WARNING = "Warning: This API is now obsolete."

PageWriter = Callable[[str, str], None]


class UnsupportedKindError(RuntimeError):
    """固定の種別集合に含まれないエンティティがディスパッチに到達した際の例外。"""

    def __init__(self, kind: ApiItemKind, site: str, name: str = "") -> None:
        detail = f" (name={name})" if name else ""
        super().__init__(f"{site}で未対応のエンティティ種別です: {kind.value}{detail}")
        self.kind = kind
        self.site = site


@dataclass(slots=True)
class GeneratedPage:
    """書き出し済みページ 1 件のメタデータ。"""

    filename: str
    kind: ApiItemKind
    title: str
    items: tuple[str, ...]
    links: tuple[str, ...]


ProgressCallback = Callable[[int, GeneratedPage], None]


_HEADING_LABELS: dict[ApiItemKind, str | None] = {
    ApiItemKind.CLASS: "class",
    ApiItemKind.ENUM: "enum",
    ApiItemKind.INTERFACE: "interface",
    ApiItemKind.CONSTRUCTOR: None,
    ApiItemKind.CONSTRUCT_SIGNATURE: None,
    ApiItemKind.METHOD: "method",
    ApiItemKind.METHOD_SIGNATURE: "method",
    ApiItemKind.FUNCTION: "function",
    ApiItemKind.MODEL: "API Reference",
    ApiItemKind.NAMESPACE: "namespace",
    ApiItemKind.PACKAGE: "package",
    ApiItemKind.PROPERTY: "property",
    ApiItemKind.PROPERTY_SIGNATURE: "property",
    ApiItemKind.TYPE_ALIAS: "type",
    ApiItemKind.VARIABLE: "variable",
}

# (category, section title, first column heading) in output order
_CONTAINER_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("classes", "Classes", "Class"),
    ("enums", "Enumerations", "Enumeration"),
    ("functions", "Functions", "Function"),
    ("interfaces", "Interfaces", "Interface"),
    ("namespaces", "Namespaces", "Namespace"),
    ("variables", "Variables", "Variable"),
    ("types", "Types", "Type Alias"),
    ("exceptions", "Exceptions", "Exception"),
)
_CONTAINER_MEMBER_CATEGORY: dict[ApiItemKind, str] = {
    ApiItemKind.CLASS: "classes",
    ApiItemKind.ENUM: "enums",
    ApiItemKind.FUNCTION: "functions",
    ApiItemKind.INTERFACE: "interfaces",
    ApiItemKind.NAMESPACE: "namespaces",
    ApiItemKind.VARIABLE: "variables",
    ApiItemKind.TYPE_ALIAS: "types",
}

_CALLABLE_KINDS = (
    ApiItemKind.CONSTRUCTOR,
    ApiItemKind.CONSTRUCT_SIGNATURE,
    ApiItemKind.METHOD,
    ApiItemKind.METHOD_SIGNATURE,
    ApiItemKind.FUNCTION,
)
_LEAF_KINDS = (
    ApiItemKind.PROPERTY,
    ApiItemKind.PROPERTY_SIGNATURE,
    ApiItemKind.TYPE_ALIAS,
    ApiItemKind.VARIABLE,
)


def is_error_class(item: ApiItem) -> bool:
    """extends 句に "Error" という参照トークンを含むクラスを例外クラスとみなします。"""

    return any(token.is_reference and token.text == "Error" for token in item.extends_tokens or ())


class PageGraphGenerator:
    """ページ単位 (PageUnit) ごとに文書を組み立て、子エンティティのページ生成を再帰的に行います。

    子ページは親ページの表を組み立てる過程で先に書き出されます。致命的な
    エラー (タグ構造の不整合・未対応の種別) は生成全体を中断させ、
    書き出し途中のページは出力されません。
    """

    def __init__(
        self,
        model: ApiModel,
        writer: PageWriter,
        config: RenderConfig | None = None,
        *,
        resolver: ReferenceResolver | None = None,
        logger: logging.Logger | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._model = model
        self._writer = writer
        self._config = config or RenderConfig()
        self._resolver = resolver or ReferenceResolver(model)
        self._logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._translator = DocNodeTranslator(self._resolver, self._logger)
        self._progress = progress
        self._pages: list[GeneratedPage] = []
        self._written: dict[str, str] = {}
        self._body_writers: dict[ApiItemKind, Callable[[MarkupBuilder, ApiItem], None]] = {
            ApiItemKind.CLASS: self._write_class_tables,
            ApiItemKind.ENUM: self._write_enum_tables,
            ApiItemKind.INTERFACE: self._write_interface_tables,
            ApiItemKind.NAMESPACE: self._write_container_tables,
            ApiItemKind.PACKAGE: self._write_container_tables,
            ApiItemKind.MODEL: self._write_model_table,
        }
        for kind in _CALLABLE_KINDS:
            self._body_writers[kind] = self._write_callable_sections
        for kind in _LEAF_KINDS:
            self._body_writers[kind] = self._write_nothing

    def generate(self) -> list[GeneratedPage]:
        """モデルのルートから全ページを生成し、書き出し順のメタデータを返します。"""

        self._pages = []
        self._written = {}
        self.write_item_page(self._model.root)
        return list(self._pages)

    def page_unit(self, item: ApiItem) -> tuple[ApiItem, ...]:
        """同名の interface と namespace の組は interface 側の 1 ページにまとめます。"""

        siblings = item.merged_siblings
        interfaces = [sibling for sibling in siblings if sibling.kind is ApiItemKind.INTERFACE]
        namespaces = [sibling for sibling in siblings if sibling.kind is ApiItemKind.NAMESPACE]
        if len(interfaces) == 1 and len(namespaces) == 1 and len(siblings) == 2:
            if item.kind is ApiItemKind.INTERFACE:
                return (interfaces[0], namespaces[0])
            return ()
        return (item,)

    def write_item_page(self, item: ApiItem) -> None:
        unit = self.page_unit(item)
        if unit:
            self._write_unit(unit)

    # Page assembly ----------------------------------------------------

    def _write_unit(self, items: Sequence[ApiItem]) -> None:
        primary = items[0]
        output = MarkupBuilder()
        for style in self._config.stylesheets:
            output.add_style(style)

        output.append_child(self._header())
        output.open_node(tag("div", [], class_name="main"))
        self._write_breadcrumb(output, primary)
        title = self._heading_text(primary)
        output.append_child(tag("h1", title, class_name="page-header"))

        if any(item.is_prerelease for item in items):
            output.append_child(tag("div", [tag("p", BETA_WARNING)], class_name="beta-warning"))

        for item in items:
            self._write_deprecated_notice(output, item)

        for item in items:
            if item.doc_comment is not None:
                summary = self._translator.translate(item.doc_comment.summary, item)
                output.append_child(tag("div", summary, class_name="summary"))

        signatures = [item for item in items if item.excerpt]
        if signatures:
            output.append_child(tag("div", "Signature", class_name="signature-heading"))
        for item in signatures:
            output.append_child(tag("pre", item.excerpt_with_modifiers, class_name="signature"))

        for item in items:
            self._write_remarks_section(output, item)
            self._write_examples_section(output, item)

        for item in items:
            writer = self._body_writers.get(item.kind)
            if writer is None:
                raise UnsupportedKindError(item.kind, "ページ本文", item.name)
            writer(output, item)

        output.close_node("div")

        filename = self._resolver.filename_for(primary)
        content = output.emit()
        previous = self._written.get(filename)
        if previous is not None:
            self._logger.warning(
                "ファイル名が衝突しています: %s (%s を %s で上書きします)",
                filename,
                previous,
                self._describe(primary),
            )
        self._writer(filename, content)
        self._written[filename] = self._describe(primary)

        page = GeneratedPage(
            filename=filename,
            kind=primary.kind,
            title=title,
            items=tuple(self._describe(item) for item in items),
            links=tuple(_unique(_internal_links(output.root()))),
        )
        self._pages.append(page)
        self._logger.info("ページを出力しました (%d 件目): %s", len(self._pages), filename)
        if self._progress is not None:
            self._progress(len(self._pages), page)

    def _header(self) -> MarkupNode:
        return tag(
            "header",
            [
                tag("div", [a("", self._config.header_url, "header-logo")], class_name="header-top"),
                tag("div", [], class_name="header-bottom"),
            ],
        )

    def _write_breadcrumb(self, output: MarkupBuilder, item: ApiItem) -> None:
        output.append_child(a("Home", self._resolver.home_link(), "breadcrumb"))
        for name, link in self._resolver.breadcrumb_trail(item):
            output.append_child(tag("span", " / ", class_name="breadcrumb"))
            output.append_child(a(name, link, "breadcrumb"))

    def _heading_text(self, item: ApiItem) -> str:
        if item.kind not in _HEADING_LABELS:
            raise UnsupportedKindError(item.kind, "ページ見出し", item.name)
        if item.kind is ApiItemKind.PACKAGE:
            self._logger.info("パッケージ %s を出力しています。", item.name)
            return f"{unscoped_package_name(item.name)} package"
        label = _HEADING_LABELS[item.kind]
        if label is None:
            return item.scoped_name
        return f"{item.scoped_name} {label}".strip()

    def _write_deprecated_notice(self, output: MarkupBuilder, item: ApiItem) -> None:
        if item.doc_comment is None or item.doc_comment.deprecated is None:
            return
        content = self._translator.translate(item.doc_comment.deprecated.nodes, item)
        output.append_child(
            tag("div", [tag("p", DEPRECATED_WARNING), *content], class_name="deprecated-warning")
        )

    def _write_remarks_section(self, output: MarkupBuilder, item: ApiItem) -> None:
        if item.doc_comment is None or item.doc_comment.remarks is None:
            return
        output.append_child(tag("h3", "Remarks", class_name="section-heading"))
        output.append_child(tag("div", self._translator.translate(item.doc_comment.remarks.nodes, item)))

    def _write_examples_section(self, output: MarkupBuilder, item: ApiItem) -> None:
        if item.doc_comment is None:
            return
        blocks = item.doc_comment.custom_blocks_for("@example")
        for number, block in enumerate(blocks, start=1):
            heading = f"Example {number}" if len(blocks) > 1 else "Example"
            output.append_child(tag("h3", heading, class_name="section-heading"))
            output.append_child(tag("div", self._translator.translate(block.nodes, item)))

    # Kind-specific bodies ----------------------------------------------

    def _write_model_table(self, output: MarkupBuilder, model: ApiItem) -> None:
        packages_table = table(["Package", "Description"])
        for member in model.members:
            if member.kind is not ApiItemKind.PACKAGE:
                raise UnsupportedKindError(member.kind, "モデル直下", member.name)
            packages_table.children.append(tr([self._title_cell(member), self._description_cell(member)]))
            self.write_item_page(member)
        self._append_table(output, "Packages", packages_table)

    def _write_container_tables(self, output: MarkupBuilder, container: ApiItem) -> None:
        tables = {
            category: table([column, "Description"]) for category, _, column in _CONTAINER_CATEGORIES
        }
        for member in self._container_members(container):
            category = _CONTAINER_MEMBER_CATEGORY.get(member.kind)
            if category is None:
                raise UnsupportedKindError(member.kind, "パッケージ/名前空間のメンバー", member.name)
            if category == "classes" and is_error_class(member):
                category = "exceptions"
            tables[category].children.append(tr([self._title_cell(member), self._description_cell(member)]))
            self.write_item_page(member)
        for category, title, _ in _CONTAINER_CATEGORIES:
            self._append_table(output, title, tables[category])

    def _write_class_tables(self, output: MarkupBuilder, item: ApiItem) -> None:
        events_table = table(["Property", "Modifiers", "Type", "Description"])
        constructors_table = table(["Constructor", "Modifiers", "Description"])
        properties_table = table(["Property", "Modifiers", "Type", "Description"])
        methods_table = table(["Method", "Modifiers", "Description"])

        for member in item.members:
            if member.kind is ApiItemKind.CONSTRUCTOR:
                constructors_table.children.append(
                    tr([self._title_cell(member), self._modifiers_cell(member), self._description_cell(member)])
                )
            elif member.kind is ApiItemKind.METHOD:
                methods_table.children.append(
                    tr([self._title_cell(member), self._modifiers_cell(member), self._description_cell(member)])
                )
            elif member.kind is ApiItemKind.PROPERTY:
                target = events_table if member.is_event_property else properties_table
                target.children.append(
                    tr(
                        [
                            self._title_cell(member),
                            self._modifiers_cell(member),
                            self._type_cell(member),
                            self._description_cell(member),
                        ]
                    )
                )
            elif member.kind is ApiItemKind.INDEX_SIGNATURE:
                continue
            else:
                raise UnsupportedKindError(member.kind, "クラスのメンバー", member.name)
            self.write_item_page(member)

        self._append_table(output, "Events", events_table)
        self._append_table(output, "Constructors", constructors_table)
        self._append_table(output, "Properties", properties_table)
        self._append_table(output, "Methods", methods_table)

    def _write_enum_tables(self, output: MarkupBuilder, item: ApiItem) -> None:
        members_table = table(["Member", "Value", "Description"])
        for member in item.members:
            if member.kind is not ApiItemKind.ENUM_MEMBER:
                raise UnsupportedKindError(member.kind, "列挙型のメンバー", member.name)
            members_table.children.append(
                tr([concise_signature(member), member.initializer or "", self._description_cell(member)])
            )
        self._append_table(output, "Enumeration Members", members_table)

    def _write_interface_tables(self, output: MarkupBuilder, item: ApiItem) -> None:
        events_table = table(["Property", "Type", "Description"])
        properties_table = table(["Property", "Type", "Description"])
        methods_table = table(["Method", "Description"])

        for member in item.members:
            if member.kind in (ApiItemKind.CONSTRUCT_SIGNATURE, ApiItemKind.METHOD_SIGNATURE):
                methods_table.children.append(tr([self._title_cell(member), self._description_cell(member)]))
            elif member.kind is ApiItemKind.PROPERTY_SIGNATURE:
                target = events_table if member.is_event_property else properties_table
                target.children.append(
                    tr([self._title_cell(member), self._type_cell(member), self._description_cell(member)])
                )
            elif member.kind in (ApiItemKind.CALL_SIGNATURE, ApiItemKind.INDEX_SIGNATURE):
                continue
            else:
                raise UnsupportedKindError(member.kind, "インターフェースのメンバー", member.name)
            self.write_item_page(member)

        self._append_table(output, "Events", events_table)
        self._append_table(output, "Properties", properties_table)
        self._append_table(output, "Methods", methods_table)

    def _write_callable_sections(self, output: MarkupBuilder, item: ApiItem) -> None:
        self._write_parameter_tables(output, item)
        self._write_throws_section(output, item)

    def _write_parameter_tables(self, output: MarkupBuilder, item: ApiItem) -> None:
        parameters_table = table(["Parameter", "Type", "Description"])
        for parameter in item.parameters or ():
            description: str | MarkupNode = ""
            if parameter.doc is not None:
                description = self._translator.first_node(parameter.doc.nodes, item) or ""
            parameters_table.children.append(tr([parameter.name, parameter.type_text, description]))
        self._append_table(output, "Parameters", parameters_table)

        comment = item.doc_comment
        if item.return_type is None or comment is None or comment.returns is None:
            return
        returns_table = table(["Type", "Description"])
        returns_table.children.append(
            tr([item.return_type.strip(), self._translator.first_node(comment.returns.nodes, item) or ""])
        )
        output.append_child(tag("h3", "Returns", class_name="section-heading"))
        output.append_child(returns_table)

    def _write_throws_section(self, output: MarkupBuilder, item: ApiItem) -> None:
        blocks = item.doc_comment.custom_blocks_for("@throws") if item.doc_comment is not None else []
        output.append_child(tag("h3", "Throws", class_name="section-heading"))
        exceptions_table = table(["Error"])
        for block in blocks:
            exceptions_table.children.append(tr([tag("span", self._translator.translate(block.nodes, item))]))
        output.append_child(exceptions_table)

    def _write_nothing(self, output: MarkupBuilder, item: ApiItem) -> None:
        return None

    # Cells --------------------------------------------------------------

    def _append_table(self, output: MarkupBuilder, title: str, table_node: MarkupNode) -> None:
        if row_count(table_node) <= 1:
            return
        output.append_child(tag("h3", title, class_name="section-heading"))
        output.append_child(table_node)

    def _title_cell(self, item: ApiItem) -> MarkupNode:
        return a(concise_signature(item), self._resolver.link_for(item), "ref")

    def _description_cell(self, item: ApiItem) -> MarkupNode:
        if item.doc_comment is None:
            return tag("div", [], class_name="description")
        return tag("div", self._translator.translate(item.doc_comment.summary, item), class_name="description")

    def _modifiers_cell(self, item: ApiItem) -> MarkupNode:
        if item.is_static:
            return tag("code", "static", class_name="modifiers")
        return tag("div", [], class_name="modifiers")

    def _type_cell(self, item: ApiItem) -> MarkupNode:
        return tag("code", item.property_type or "", class_name="type")

    def _container_members(self, container: ApiItem) -> list[ApiItem]:
        if container.kind is ApiItemKind.PACKAGE:
            for member in container.members:
                if member.kind is ApiItemKind.ENTRY_POINT:
                    return member.members
            return []
        return container.members

    def _describe(self, item: ApiItem) -> str:
        return item.scoped_name or item.name or item.kind.value


def _internal_links(node: MarkupNode) -> Iterator[str]:
    if node.kind == "a":
        href = node.attributes.get("href", "")
        if href.startswith("./"):
            yield href[2:]
    for child in node.children:
        yield from _internal_links(child)


def _unique(values: Iterator[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered
