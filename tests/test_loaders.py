from datetime import date

import pytest
from lxml import etree

from mummy.dom import find_body, find_head, xhtml
from mummy.errors import ParseError
from mummy.loaders import (
    HtmlLoader,
    MarkdownLoader,
    XhtmlLoader,
    extract_head_metadata,
    split_front_matter,
)
from mummy.vocab import ADHOC_NAMESPACE, MUMMY_NAMESPACE, MUMMY_ORDER, PUBLISHED_ON, TITLE

XHTML = "http://www.w3.org/1999/xhtml"


def test_xhtml_loader():
    root = XhtmlLoader().load(
        f'<html xmlns="{XHTML}"><head><title>T</title></head><body><p>x</p></body></html>'.encode(),
        "page.xhtml",
    )
    assert root.tag == xhtml("html")
    with pytest.raises(ParseError):
        XhtmlLoader().load(b"<html><body>", "broken.xhtml")
    with pytest.raises(ParseError):
        XhtmlLoader().load(b"<html><body/></html>", "plain.xhtml")


def test_html_loader_converts_to_xhtml():
    root = HtmlLoader().load(
        b"<!DOCTYPE html><html><head><title>T</title></head><body>"
        b"<nav><ul mummy:regenerate='regenerate'><li><a href=''>x</a></li></ul></nav>"
        b"<mummy:directory moreLabel='More'></mummy:directory>"
        b"<p>one<!-- note -->two</p></body></html>",
        "page.html",
    )
    assert root.tag == xhtml("html")
    body = find_body(root)
    assert body is not None
    list_element = root.find(f".//{xhtml('ul')}")
    assert list_element.get(f"{{{MUMMY_NAMESPACE}}}regenerate") == "regenerate"
    widget = body[1]
    assert widget.tag == f"{{{MUMMY_NAMESPACE}}}directory"
    paragraph = body[2]
    assert paragraph.text == "one"
    (comment,) = list(paragraph)
    assert comment.tag is etree.Comment
    assert comment.tail == "two"


def test_extract_head_metadata():
    root = XhtmlLoader().load(
        f'<html xmlns="{XHTML}" prefix="ex: https://example.com/ns/"><head>'
        "<title> Hello </title>"
        '<meta charset="utf-8"/>'
        '<meta name="published-on" content="2024-05-06"/>'
        '<meta name="description" content="About things"/>'
        '<meta name="mummy:order" content="3"/>'
        '<meta name="twitter:card" content="summary"/>'
        '<meta property="og:title" content="OG Title"/>'
        '<meta property="ex:favorite-color" content="blue"/>'
        '<meta name="no-content"/>'
        "</head><body/></html>".encode(),
        "page.xhtml",
    )
    properties = dict(extract_head_metadata(root))
    assert properties[TITLE] == "Hello"
    assert properties[PUBLISHED_ON] == date(2024, 5, 6)
    assert properties[ADHOC_NAMESPACE + "description"] == "About things"
    assert properties[MUMMY_ORDER] == "3"
    assert properties[ADHOC_NAMESPACE + "twitter:card"] == "summary"
    assert properties["http://ogp.me/ns#title"] == "OG Title"
    assert properties["https://example.com/ns/favoriteColor"] == "blue"
    assert len(properties) == 7


def test_extract_head_metadata_rejects_unknown_property_prefix():
    root = XhtmlLoader().load(
        f'<html xmlns="{XHTML}"><head><meta property="zz:thing" content="x"/></head><body/></html>'.encode(),
        "page.xhtml",
    )
    with pytest.raises(ParseError):
        extract_head_metadata(root)


def test_split_front_matter():
    front_matter, body = split_front_matter("---\ntitle: Hi\n---\n# Body\n")
    assert front_matter == {"title": "Hi"}
    assert body == "# Body\n"
    assert split_front_matter("# No front matter\n") == ({}, "# No front matter\n")
    with pytest.raises(ParseError):
        split_front_matter("---\n- a list\n---\nbody\n")
    with pytest.raises(ParseError):
        split_front_matter("---\ntitle: [unclosed\n---\nbody\n")


def test_markdown_loader_renders_body():
    data = (
        "---\ntitle: Notes\npublished-on: 2024-01-02\n---\n"
        "# Heading\n\nSome ~~old~~ text.\n\n"
        "```python\nprint('hi')\n```\n\n"
        "```nosuchlanguage\nx < y\n```\n"
    ).encode()
    loader = MarkdownLoader()
    root = loader.load(data, "notes.md")
    assert find_head(root) is not None
    body = find_body(root)
    assert body.find(xhtml("h1")).text == "Heading"
    assert body.find(f".//{xhtml('del')}").text == "old"
    assert body.find(f".//{xhtml('div')}").get("class") == "highlight"
    code = body.findall(f".//{xhtml('code')}")[-1]
    assert code.get("class") == "language-nosuchlanguage"
    assert code.text == "x < y\n"

    metadata = dict(loader.load_metadata(data, "notes.md"))
    assert metadata[TITLE] == "Notes"
    assert metadata[PUBLISHED_ON] == date(2024, 1, 2)


def test_markdown_loader_rejects_unknown_front_matter_prefix():
    with pytest.raises(ParseError):
        MarkdownLoader().load_metadata(b"---\nzz:thing: x\n---\nbody\n", "notes.md")
