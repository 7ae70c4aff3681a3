from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from api2html.markup import MarkupBuilder, MarkupNode, StructureError, a, row_count, table, tag, tr


def _shape(node: MarkupNode) -> tuple:
    if isinstance(node.content, list):
        return (node.kind, tuple(_shape(child) for child in node.content))
    return (node.kind, node.content)


def test_balanced_calls_produce_mirroring_tree() -> None:
    builder = MarkupBuilder()
    builder.open_node(tag("div", [], class_name="outer"))
    builder.append_child(tag("span", "first"))
    builder.open_node(tag("ul", []))
    builder.append_child(tag("li", "item"))
    builder.close_node("ul")
    builder.close_node("div")
    builder.append_child(tag("p", "after"))

    assert _shape(builder.root()) == (
        "body",
        (
            ("div", (("span", "first"), ("ul", (("li", "item"),)))),
            ("p", "after"),
        ),
    )
    assert builder.depth == 0


def test_open_node_with_callback_closes_automatically() -> None:
    builder = MarkupBuilder()

    def fill(inner: MarkupBuilder) -> None:
        inner.append_child(tag("h2", "title"))
        assert inner.current.kind == "section"

    builder.open_node(tag("section", []), fill)

    assert builder.depth == 0
    assert builder.current is builder.root()
    assert _shape(builder.root()) == ("body", (("section", (("h2", "title"),)),))


def test_close_with_wrong_kind_raises_without_mutation() -> None:
    builder = MarkupBuilder()
    opened = tag("div", [])
    builder.open_node(opened)

    with pytest.raises(StructureError):
        builder.close_node("span")

    assert builder.depth == 1
    assert builder.current is opened


def test_close_beyond_root_raises() -> None:
    builder = MarkupBuilder()
    builder.open_node(tag("b", []))
    builder.close_node("b")

    with pytest.raises(StructureError):
        builder.close_node("b")
    with pytest.raises(StructureError):
        builder.close_node("body")

    assert builder.depth == 0
    assert builder.current is builder.root()


def test_open_node_rejects_text_content() -> None:
    builder = MarkupBuilder()

    with pytest.raises(StructureError):
        builder.open_node(tag("span", "text"))

    assert builder.root().children == []


def test_finish_detects_unclosed_nodes() -> None:
    builder = MarkupBuilder()
    builder.open_node(tag("em", []))

    with pytest.raises(StructureError, match="em"):
        builder.finish()


def test_emit_renders_head_with_styles_then_body() -> None:
    builder = MarkupBuilder()
    builder.add_style("styles.css")
    builder.add_style("extra.css")
    builder.add_style("styles.css")
    builder.append_child(tag("p", "<script>alert(1)</script> & more"))
    builder.append_child(a("Home", "./index.html", "breadcrumb"))

    html = builder.emit()

    assert html.startswith("<!DOCTYPE html>")
    assert "&lt;script&gt;" in html
    assert "<script>" not in html
    soup = BeautifulSoup(html, "lxml")
    links = soup.head.find_all("link")
    assert [link["href"] for link in links] == ["styles.css", "extra.css", "styles.css"]
    assert all(link["rel"] == ["stylesheet"] for link in links)
    anchor = soup.body.find("a")
    assert anchor["href"] == "./index.html"
    assert anchor["class"] == ["breadcrumb"]
    assert soup.body.find("p").get_text() == "<script>alert(1)</script> & more"


def test_emit_keeps_attribute_insertion_order() -> None:
    builder = MarkupBuilder()
    builder.add_style("styles.css")
    builder.append_child(tag("td", "x & y", class_name="zeta", title="t", data_a="1"))

    html = builder.emit()

    assert '<link rel="stylesheet" type="text/css" href="styles.css"/>' in html
    assert '<td class="zeta" title="t" data_a="1">x &amp; y</td>' in html


def test_table_helpers_count_only_data_rows() -> None:
    node = table(["Name", "Description"])
    assert row_count(node) == 0

    node.children.append(tr(["plain", tag("div", [], class_name="description")]))
    node.children.append(tr(["second", ""]))

    assert row_count(node) == 2
    first_row = node.children[1]
    assert first_row.children[0].content == "plain"
    assert first_row.children[1].children[0].attributes == {"class": "description"}
