from __future__ import annotations

from api2html.model import ApiItem, ApiItemKind, ApiModel, Parameter
from api2html.references import (
    ReferenceResolver,
    concise_signature,
    safe_filename,
    unscoped_package_name,
)


def _method(name: str, overload_index: int, *params: str) -> ApiItem:
    return ApiItem(
        kind=ApiItemKind.METHOD,
        name=name,
        overload_index=overload_index,
        parameters=[Parameter(name=param) for param in params],
    )


def _model(*members: ApiItem, package: str = "@acme/widgets") -> ApiModel:
    entry = ApiItem(kind=ApiItemKind.ENTRY_POINT, name="", members=list(members))
    pkg = ApiItem(kind=ApiItemKind.PACKAGE, name=package, members=[entry])
    return ApiModel(ApiItem(kind=ApiItemKind.MODEL, name="", members=[pkg]))


def test_model_maps_to_index() -> None:
    model = _model()
    resolver = ReferenceResolver(model)

    assert resolver.filename_for(model.root) == "index.html"
    assert resolver.link_for(model.root) == "./index.html"
    assert resolver.home_link() == "./index.html"


def test_package_uses_unscoped_safe_name() -> None:
    model = _model(package="@acme/My Widgets")
    resolver = ReferenceResolver(model)

    assert resolver.filename_for(model.packages[0]) == "my_widgets.html"


def test_nested_members_join_with_dots_and_skip_entry_point() -> None:
    draw = _method("draw", 1, "ctx")
    widget = ApiItem(kind=ApiItemKind.CLASS, name="Widget", members=[draw])
    model = _model(widget)
    resolver = ReferenceResolver(model)

    assert resolver.filename_for(widget) == "widgets.widget.html"
    assert resolver.filename_for(draw) == "widgets.widget.draw.html"
    assert resolver.link_for(draw) == "./widgets.widget.draw.html"


def test_overload_suffix_is_index_minus_one() -> None:
    first = _method("draw", 1)
    second = _method("draw", 2, "ctx")
    third = _method("draw", 3, "ctx", "options")
    unindexed = ApiItem(kind=ApiItemKind.METHOD, name="reset", parameters=[])
    widget = ApiItem(kind=ApiItemKind.CLASS, name="Widget", members=[first, second, third, unindexed])
    resolver = ReferenceResolver(_model(widget))

    assert resolver.filename_for(first) == "widgets.widget.draw.html"
    assert resolver.filename_for(second) == "widgets.widget.draw_1.html"
    assert resolver.filename_for(third) == "widgets.widget.draw_2.html"
    assert resolver.filename_for(unindexed) == "widgets.widget.reset.html"


def test_overload_index_ignored_without_parameter_list() -> None:
    prop = ApiItem(kind=ApiItemKind.PROPERTY, name="size", overload_index=2)
    widget = ApiItem(kind=ApiItemKind.CLASS, name="Widget", members=[prop])
    resolver = ReferenceResolver(_model(widget))

    assert resolver.filename_for(prop) == "widgets.widget.size.html"


def test_overloaded_method_inside_overloaded_parent_chain() -> None:
    inner = ApiItem(kind=ApiItemKind.FUNCTION, name="make", overload_index=2, parameters=[])
    namespace = ApiItem(kind=ApiItemKind.NAMESPACE, name="Factory", members=[inner])
    resolver = ReferenceResolver(_model(namespace))

    assert resolver.filename_for(inner) == "widgets.factory.make_1.html"


def test_filenames_are_distinct_and_stable() -> None:
    widget = ApiItem(
        kind=ApiItemKind.CLASS,
        name="Widget",
        members=[
            ApiItem(kind=ApiItemKind.CONSTRUCTOR, name="(constructor)", parameters=[]),
            _method("draw", 1),
            _method("draw", 2, "ctx"),
            ApiItem(kind=ApiItemKind.PROPERTY, name="size"),
        ],
    )
    gadget = ApiItem(kind=ApiItemKind.INTERFACE, name="Gadget")
    helper = ApiItem(kind=ApiItemKind.FUNCTION, name="helper", overload_index=1, parameters=[])
    model = _model(widget, gadget, helper)
    resolver = ReferenceResolver(model)

    items = [item for item in model.root.walk() if item.kind is not ApiItemKind.ENTRY_POINT]
    names = [resolver.filename_for(item) for item in items]

    assert len(set(names)) == len(items)
    assert names == [resolver.filename_for(item) for item in items]


def test_breadcrumb_skips_model_and_entry_point() -> None:
    draw = _method("draw", 1)
    widget = ApiItem(kind=ApiItemKind.CLASS, name="Widget", members=[draw])
    resolver = ReferenceResolver(_model(widget))

    assert resolver.breadcrumb_trail(draw) == [
        ("@acme/widgets", "./widgets.html"),
        ("Widget", "./widgets.widget.html"),
        ("draw", "./widgets.widget.draw.html"),
    ]


def test_safe_filename_replaces_unsafe_characters() -> None:
    assert safe_filename("(constructor)") == "_constructor_"
    assert safe_filename("Foo.Bar-baz_1") == "foo.bar-baz_1"
    assert safe_filename("日本") == "__"


def test_unscoped_package_name() -> None:
    assert unscoped_package_name("@acme/widgets") == "widgets"
    assert unscoped_package_name("widgets") == "widgets"


def test_concise_signature_lists_parameter_names() -> None:
    assert concise_signature(_method("draw", 1, "ctx", "options")) == "draw(ctx, options)"
    assert concise_signature(ApiItem(kind=ApiItemKind.PROPERTY, name="size")) == "size"
