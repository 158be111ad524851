import pytest
from lxml import etree

from mummy.dom import (
    clone,
    ensure_head,
    find_content_element,
    find_excerpt,
    new_document,
    relocate_element,
    remove_element,
    replace_element,
    serialize_html,
    transform_children,
    transform_root,
    xhtml,
)
from mummy.errors import TransformError

XHTML = "http://www.w3.org/1999/xhtml"


def parse(body: str, head: str = "") -> etree._Element:
    return etree.fromstring(
        f'<html xmlns="{XHTML}"><head>{head}</head><body>{body}</body></html>'
    )


def test_transform_root_must_keep_the_root():
    root = new_document("Title")
    assert transform_root(root, lambda element: [element]) is root
    with pytest.raises(TransformError):
        transform_root(root, lambda element: [])
    with pytest.raises(TransformError):
        transform_root(root, lambda element: [element, clone(element)])
    with pytest.raises(TransformError):
        transform_root(root, lambda element: [new_document()])


def test_replace_and_remove_keep_tail_text():
    root = parse("<p>a<b>bold</b> after bold<i>it</i> after it</p>")
    paragraph = root[1][0]
    bold = paragraph[0]
    replace_element(bold, [etree.Element(xhtml("em"))])
    assert etree.tostring(paragraph, encoding="unicode").count("after bold") == 1
    remove_element(paragraph[1])
    assert "".join(paragraph.itertext()) == "a after bold after it"


def test_transform_children_splices_results():
    root = parse("<p>one</p><div>two</div><p>three</p>")
    body = root[1]

    def drop_divs(element):
        if element.tag == xhtml("div"):
            return []
        if element.tag == xhtml("p"):
            return [element, etree.Element(xhtml("hr"))]
        return [element]

    transform_children(body, drop_divs)
    assert [etree.QName(child).localname for child in body] == ["p", "hr", "p", "hr"]


def test_find_content_element_prefers_main_then_article():
    assert find_content_element(parse("<article/><main/>")).tag == xhtml("main")
    assert find_content_element(parse("<article/>")).tag == xhtml("article")
    assert find_content_element(parse("<div/>")).tag == xhtml("body")
    frameset = etree.fromstring(f'<html xmlns="{XHTML}"><head/><frameset/></html>')
    assert find_content_element(frameset).tag == xhtml("frameset")


def test_ensure_head_creates_missing_head():
    root = etree.fromstring(f'<html xmlns="{XHTML}"><body/></html>')
    head = ensure_head(root)
    assert root[0] is head
    assert ensure_head(root) is head


def test_relocate_element_only_touches_relative_paths():
    root = parse(
        '<a href="">self</a><a href="#top">top</a><a href="page.xhtml">page</a>'
        '<a href="https://example.com/">ext</a><img src="img/cat.jpg"/><a>none</a>'
        '<a href="/abs.html">abs</a>'
    )
    seen = []

    def relocate(reference):
        seen.append(reference)
        return "moved/" + reference

    relocate_element(root, relocate)
    hrefs = [element.get("href") for element in root.iter(xhtml("a"))]
    assert hrefs == ["", "#top", "moved/page.xhtml", "https://example.com/", None, "/abs.html"]
    assert root.find(f".//{xhtml('img')}").get("src") == "moved/img/cat.jpg"
    assert seen == ["page.xhtml", "img/cat.jpg"]


def test_relocate_element_keeps_unresolved_references():
    root = parse('<a href="page.xhtml">page</a>')
    relocate_element(root, lambda reference: None)
    assert root.find(f".//{xhtml('a')}").get("href") == "page.xhtml"


def test_find_excerpt_skips_blank_paragraphs():
    root = parse("<main><p>  </p><p>First <b>words</b></p><p>Second</p></main>")
    assert "".join(find_excerpt(root).itertext()) == "First words"
    assert find_excerpt(parse("<div>no paragraphs</div>")) is None


def test_serialize_html_writes_html5():
    root = parse("<p>Hi<br/></p>", head='<meta charset="utf-8"/><title>T</title>')
    output = serialize_html(root).decode("utf-8")
    assert output.startswith("<!DOCTYPE html>")
    assert "xmlns" not in output
    assert "<br>" in output
    assert "<p>Hi<br></p>" in output
