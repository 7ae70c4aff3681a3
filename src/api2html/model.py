"""API エンティティツリーとドキュメントコメントの正規化済みデータモデル。

外部のモデル提供者から受け取ったエンティティは、境界で一度だけ
このモジュールの型へ変換されます。「ドキュメントを持つか」「引数リストを
持つか」といった能力は実行時の型判定ではなく、明示的な Optional
フィールドで表現します。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, Sequence


class ApiItemKind(str, Enum):
    MODEL = "Model"
    PACKAGE = "Package"
    ENTRY_POINT = "EntryPoint"
    NAMESPACE = "Namespace"
    CLASS = "Class"
    INTERFACE = "Interface"
    ENUM = "Enum"
    ENUM_MEMBER = "EnumMember"
    CONSTRUCTOR = "Constructor"
    CONSTRUCT_SIGNATURE = "ConstructSignature"
    METHOD = "Method"
    METHOD_SIGNATURE = "MethodSignature"
    FUNCTION = "Function"
    PROPERTY = "Property"
    PROPERTY_SIGNATURE = "PropertySignature"
    TYPE_ALIAS = "TypeAlias"
    VARIABLE = "Variable"
    CALL_SIGNATURE = "CallSignature"
    INDEX_SIGNATURE = "IndexSignature"


class ReleaseTag(str, Enum):
    NONE = "None"
    INTERNAL = "Internal"
    ALPHA = "Alpha"
    BETA = "Beta"
    PUBLIC = "Public"

    @property
    def is_prerelease(self) -> bool:
        return self in (ReleaseTag.ALPHA, ReleaseTag.BETA)


# Doc nodes --------------------------------------------------------------


class DocNodeKind(str, Enum):
    PARAGRAPH = "Paragraph"
    BLOCK = "Block"
    INLINE_TAG = "InlineTag"
    SOFT_BREAK = "SoftBreak"
    CODE_SPAN = "CodeSpan"
    FENCED_CODE = "FencedCode"
    ESCAPED_TEXT = "EscapedText"
    PLAIN_TEXT = "PlainText"
    LINK_TAG = "LinkTag"
    HTML_START_TAG = "HtmlStartTag"
    HTML_END_TAG = "HtmlEndTag"
    ERROR_TEXT = "ErrorText"


@dataclass(slots=True)
class DocNode:
    kind: ClassVar[DocNodeKind]


@dataclass(slots=True)
class DocParagraph(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.PARAGRAPH
    nodes: list[DocNode] = field(default_factory=list)


@dataclass(slots=True)
class DocBlock(DocNode):
    """`@remarks` や `@throws` などのブロックタグとその内容。"""

    kind: ClassVar[DocNodeKind] = DocNodeKind.BLOCK
    tag_name: str = ""
    nodes: list[DocNode] = field(default_factory=list)


@dataclass(slots=True)
class DocInlineTag(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.INLINE_TAG
    tag_name: str = ""
    content: str = ""


@dataclass(slots=True)
class DocSoftBreak(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.SOFT_BREAK


@dataclass(slots=True)
class DocCodeSpan(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.CODE_SPAN
    code: str = ""


@dataclass(slots=True)
class DocFencedCode(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.FENCED_CODE
    code: str = ""
    language: str = ""


@dataclass(slots=True)
class DocEscapedText(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.ESCAPED_TEXT
    decoded_text: str = ""


@dataclass(slots=True)
class DocPlainText(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.PLAIN_TEXT
    text: str = ""


@dataclass(slots=True)
class DocLinkTag(DocNode):
    """URL またはシンボル参照を宛先に持つ `{@link}` タグ。"""

    kind: ClassVar[DocNodeKind] = DocNodeKind.LINK_TAG
    url_destination: str | None = None
    code_destination: str | None = None
    link_text: str | None = None


@dataclass(slots=True)
class DocHtmlStartTag(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.HTML_START_TAG
    name: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    self_closing: bool = False


@dataclass(slots=True)
class DocHtmlEndTag(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.HTML_END_TAG
    name: str = ""


@dataclass(slots=True)
class DocErrorText(DocNode):
    kind: ClassVar[DocNodeKind] = DocNodeKind.ERROR_TEXT
    text: str = ""
    error_message: str = ""


@dataclass(slots=True)
class DocComment:
    summary: list[DocNode] = field(default_factory=list)
    remarks: DocBlock | None = None
    returns: DocBlock | None = None
    deprecated: DocBlock | None = None
    custom_blocks: list[DocBlock] = field(default_factory=list)

    def custom_blocks_for(self, tag_name: str) -> list[DocBlock]:
        wanted = tag_name.upper()
        return [block for block in self.custom_blocks if block.tag_name.upper() == wanted]


# Entities ---------------------------------------------------------------


@dataclass(slots=True)
class ExcerptToken:
    kind: str
    text: str

    @property
    def is_reference(self) -> bool:
        return self.kind == "Reference"


@dataclass(slots=True)
class Parameter:
    name: str
    type_text: str = ""
    doc: DocBlock | None = None
    is_optional: bool = False


@dataclass(slots=True, eq=False)
class ApiItem:
    """ドキュメント化されたプログラム要素 1 件。"""

    kind: ApiItemKind
    name: str
    members: list["ApiItem"] = field(default_factory=list)
    doc_comment: DocComment | None = None
    excerpt: str = ""
    excerpt_tokens: list[ExcerptToken] = field(default_factory=list)
    release_tag: ReleaseTag | None = None
    is_static: bool | None = None
    is_event_property: bool = False
    parameters: list[Parameter] | None = None
    overload_index: int | None = None
    return_type: str | None = None
    property_type: str | None = None
    extends_tokens: list[ExcerptToken] | None = None
    initializer: str | None = None
    parent: "ApiItem | None" = field(default=None, repr=False)

    def __post_init__(self) -> None:
        for member in self.members:
            member.parent = self

    def add_member(self, member: "ApiItem") -> None:
        member.parent = self
        self.members.append(member)

    @property
    def hierarchy(self) -> list["ApiItem"]:
        """ルートから自身までの祖先列 (自身を含む)。"""

        chain: list[ApiItem] = []
        item: ApiItem | None = self
        while item is not None:
            chain.append(item)
            item = item.parent
        chain.reverse()
        return chain

    @property
    def scoped_name(self) -> str:
        names: list[str] = []
        for item in self.hierarchy:
            if item.kind in (ApiItemKind.MODEL, ApiItemKind.PACKAGE, ApiItemKind.ENTRY_POINT):
                names.clear()
                continue
            names.append(item.name)
        return ".".join(names)

    @property
    def merged_siblings(self) -> list["ApiItem"]:
        if self.parent is None:
            return [self]
        return [member for member in self.parent.members if member.name == self.name]

    @property
    def has_parameters(self) -> bool:
        return self.parameters is not None

    @property
    def is_prerelease(self) -> bool:
        return self.release_tag is not None and self.release_tag.is_prerelease

    @property
    def excerpt_with_modifiers(self) -> str:
        if self.is_static and self.excerpt:
            return f"static {self.excerpt}"
        return self.excerpt

    def walk(self) -> Iterator["ApiItem"]:
        yield self
        for member in self.members:
            yield from member.walk()


@dataclass(slots=True)
class ResolutionResult:
    item: ApiItem | None
    error_message: str | None = None


_SELECTOR_KINDS: dict[str, tuple[ApiItemKind, ...]] = {
    "class": (ApiItemKind.CLASS,),
    "interface": (ApiItemKind.INTERFACE,),
    "namespace": (ApiItemKind.NAMESPACE,),
    "enum": (ApiItemKind.ENUM,),
    "function": (ApiItemKind.FUNCTION,),
    "variable": (ApiItemKind.VARIABLE,),
    "type": (ApiItemKind.TYPE_ALIAS,),
    "constructor": (ApiItemKind.CONSTRUCTOR, ApiItemKind.CONSTRUCT_SIGNATURE),
    "member": (
        ApiItemKind.METHOD,
        ApiItemKind.METHOD_SIGNATURE,
        ApiItemKind.PROPERTY,
        ApiItemKind.PROPERTY_SIGNATURE,
        ApiItemKind.ENUM_MEMBER,
    ),
}

_MEMBER_SEPARATOR = re.compile(r"[.#]")


class ApiModel:
    """エンティティツリーのルートを保持し、宣言参照を解決します。"""

    def __init__(self, root: ApiItem) -> None:
        if root.kind is not ApiItemKind.MODEL:
            raise ValueError(f"モデルのルートは Model である必要があります: {root.kind.value}")
        self.root = root

    @property
    def packages(self) -> list[ApiItem]:
        return [item for item in self.root.members if item.kind is ApiItemKind.PACKAGE]

    def find_package(self, name: str) -> ApiItem | None:
        for package in self.packages:
            if package.name == name:
                return package
        return None

    def resolve_declaration_reference(self, reference: str, context: ApiItem | None) -> ResolutionResult:
        """`[package!]Name(.Name)*` 形式の参照を解決します。失敗時は例外ではなくメッセージを返します。"""

        text = reference.strip()
        package_name, separator, member_path = text.rpartition("!")
        if separator:
            package = self.find_package(package_name)
            if package is None:
                return ResolutionResult(None, f'パッケージ "{package_name}" が見つかりません')
            scopes = [_entry_point_of(package)]
        else:
            if context is None:
                return ResolutionResult(None, "パッケージ名のない参照を解決する文脈がありません")
            scopes = _lexical_scopes(context)
        components = [component for component in _MEMBER_SEPARATOR.split(member_path) if component]
        if not components:
            if separator:
                return ResolutionResult(self.find_package(package_name))
            return ResolutionResult(None, "参照が空です")
        first_name = components[0].partition(":")[0]
        for scope in scopes:
            if any(member.name == first_name for member in scope.members):
                return _walk_components(scope, components)
        return ResolutionResult(None, f'"{first_name}" という名前のメンバーが見つかりません')


def _entry_point_of(package: ApiItem) -> ApiItem:
    for member in package.members:
        if member.kind is ApiItemKind.ENTRY_POINT:
            return member
    return package


def _lexical_scopes(context: ApiItem) -> list[ApiItem]:
    scopes: list[ApiItem] = []
    for item in reversed(context.hierarchy):
        if item.kind is ApiItemKind.PACKAGE:
            if not scopes:
                scopes.append(_entry_point_of(item))
            break
        if item.kind is ApiItemKind.MODEL:
            break
        if item.members:
            scopes.append(item)
    return scopes


def _walk_components(scope: ApiItem, components: Sequence[str]) -> ResolutionResult:
    current = scope
    for component in components:
        name, _, selector = component.partition(":")
        candidates = [member for member in current.members if member.name == name]
        if selector:
            candidates = _apply_selector(candidates, selector)
        if not candidates:
            qualifier = f":{selector}" if selector else ""
            return ResolutionResult(None, f'"{name}{qualifier}" という名前のメンバーが見つかりません')
        if len(candidates) > 1:
            return ResolutionResult(
                None, f'"{name}" は曖昧な参照です ({len(candidates)} 件一致)。セレクターを指定してください'
            )
        current = candidates[0]
    return ResolutionResult(current)


def _apply_selector(candidates: Sequence[ApiItem], selector: str) -> list[ApiItem]:
    if selector.isdigit():
        index = int(selector)
        return [item for item in candidates if (item.overload_index or 1) == index]
    kinds = _SELECTOR_KINDS.get(selector.lower())
    if kinds is None:
        return []
    return [item for item in candidates if item.kind in kinds]
