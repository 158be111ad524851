"""XHTML page tree helpers built on lxml.

Pages are handled as lxml element trees in the XHTML namespace. Pipeline
stages are written as element transforms (`element -> list of elements`);
`transform_children` applies a transform to every child element and splices
the results back in, and `transform_root` applies one to a document root,
which must come back unchanged in identity and count.

Key functions:
- transform_root / transform_children: Apply element transforms.
- find_head / ensure_head / find_content_element: Locate structural elements.
- replace_element / remove_element: Edit siblings without losing tail text.
- relocate_element: Rewrite the references of reference-bearing elements.
- find_excerpt: First non-blank paragraph of the page content.
- serialize_html: Write a tree as an HTML5 document.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator
from pathlib import Path
from types import MappingProxyType

import lxml.html
from lxml import etree

from .errors import SerializationError, TransformError
from .references import is_relative_path_reference
from .vocab import MUMMY_NAMESPACE

XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

DOCUMENT_NSMAP = {None: XHTML_NAMESPACE, "mummy": MUMMY_NAMESPACE}

ElementTransform = Callable[[etree._Element], list[etree._Element]]


def xhtml(local_name: str) -> str:
    """Qualified lxml tag name of an XHTML element (`{ns}local`)."""
    return f"{{{XHTML_NAMESPACE}}}{local_name}"


def mummy(local_name: str) -> str:
    """Qualified lxml name of a mummy control element or attribute."""
    return f"{{{MUMMY_NAMESPACE}}}{local_name}"


def is_element(node: object) -> bool:
    """Whether a node is an element (not a comment or processing instruction)."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def is_xhtml(element: etree._Element, *local_names: str) -> bool:
    return is_element(element) and element.tag in {xhtml(name) for name in local_names}


def namespace_of(element: etree._Element) -> str | None:
    return etree.QName(element).namespace if is_element(element) else None


def local_name_of(element: etree._Element) -> str:
    return etree.QName(element).localname


def new_document(title: str | None = None) -> etree._Element:
    """Create an empty XHTML document with a head and a body."""
    root = etree.Element(xhtml("html"), nsmap=DOCUMENT_NSMAP)
    head = etree.SubElement(root, xhtml("head"))
    if title is not None:
        etree.SubElement(head, xhtml("title")).text = title
    etree.SubElement(root, xhtml("body"))
    return root


def child_elements(element: etree._Element, local_name: str) -> Iterator[etree._Element]:
    tag = xhtml(local_name)
    return (child for child in element if is_element(child) and child.tag == tag)


def find_child(element: etree._Element, local_name: str) -> etree._Element | None:
    return next(child_elements(element, local_name), None)


def find_head(root: etree._Element) -> etree._Element | None:
    return find_child(root, "head")


def find_body(root: etree._Element) -> etree._Element | None:
    return find_child(root, "body")


def find_title_text(head: etree._Element) -> str | None:
    """Return the stripped text of the head's `<title>`, if it has any."""
    title = find_child(head, "title")
    if title is None:
        return None
    text = element_text(title).strip()
    return text or None


def ensure_head(root: etree._Element) -> etree._Element:
    """Return the document head, creating it as the first child if needed."""
    head = find_head(root)
    if head is None:
        head = etree.Element(xhtml("head"))
        head.tail = root.text
        root.text = None
        root.insert(0, head)
    return head


def find_content_element(root: etree._Element) -> etree._Element | None:
    """Find where page content lives: body>main, body>article, body, or html>frameset."""
    body = find_body(root)
    if body is not None:
        for local_name in ("main", "article"):
            found = find_child(body, local_name)
            if found is not None:
                return found
        return body
    return find_child(root, "frameset")


def element_text(element: etree._Element) -> str:
    return "".join(element.itertext())


def remove_element(element: etree._Element) -> None:
    """Remove an element, keeping its tail text in place."""
    replace_element(element, [])


def replace_element(element: etree._Element, replacements: list[etree._Element]) -> None:
    """Replace an element with zero or more elements, keeping its tail text."""
    parent = element.getparent()
    if parent is None:
        raise TransformError("Cannot replace the document root element")
    tail = element.tail
    index = parent.index(element)
    parent.remove(element)
    for offset, replacement in enumerate(replacements):
        parent.insert(index + offset, replacement)
    if not tail:
        return
    if replacements:
        last = replacements[-1]
        last.tail = (last.tail or "") + tail
    elif index > 0:
        previous = parent[index - 1]
        previous.tail = (previous.tail or "") + tail
    else:
        parent.text = (parent.text or "") + tail


def transform_children(element: etree._Element, transform: ElementTransform) -> None:
    """Apply a transform to each child element, splicing in what it returns."""
    for child in list(element):
        if not is_element(child):
            continue
        results = transform(child)
        if len(results) == 1 and results[0] is child:
            continue
        replace_element(child, results)


def transform_root(
    root: etree._Element, transform: ElementTransform, source_path: Path | None = None
) -> etree._Element:
    """Apply a transform to a document root, which must be returned unchanged.

    Raises:
        TransformError: If the transform removed, replaced or multiplied the root.
    """
    results = transform(root)
    if len(results) != 1 or results[0] is not root:
        raise TransformError(
            "Page transformation must keep the document root element", source_path
        )
    return root


def clone(element: etree._Element) -> etree._Element:
    """Deep copy of an element without its tail text."""
    copied = copy.deepcopy(element)
    copied.tail = None
    return copied


def strip_xhtml_namespace(root: etree._Element) -> None:
    for element in root.iter():
        if is_element(element) and namespace_of(element) == XHTML_NAMESPACE:
            element.tag = etree.QName(element).localname
    etree.cleanup_namespaces(root)


def serialize_html(root: etree._Element, source_path: Path | None = None) -> bytes:
    """Serialize a page tree as an HTML5 document.

    The tree is modified: XHTML namespace qualifications are dropped.

    Raises:
        SerializationError: If lxml cannot write the tree.
    """
    try:
        strip_xhtml_namespace(root)
        return lxml.html.tostring(
            root, method="html", encoding="utf-8", doctype="<!DOCTYPE html>"
        )
    except (etree.SerialisationError, ValueError, TypeError) as exc:
        raise SerializationError(f"Unable to serialize page: {exc}", source_path) from exc


class HtmlSerializer:
    """Writes page trees as HTML5."""

    def serialize(self, root: etree._Element) -> bytes:
        return serialize_html(root)


REFERENCE_ATTRIBUTES = MappingProxyType(
    {
        xhtml("a"): "href",
        xhtml("area"): "href",
        xhtml("audio"): "src",
        xhtml("embed"): "src",
        xhtml("frame"): "src",
        xhtml("iframe"): "src",
        xhtml("img"): "src",
        xhtml("link"): "href",
        xhtml("object"): "data",
        xhtml("script"): "src",
        xhtml("source"): "src",
        xhtml("track"): "src",
        xhtml("video"): "src",
    }
)


def relocate_element(
    element: etree._Element, relocate: Callable[[str], str | None]
) -> list[etree._Element]:
    """Rewrite the relative references of an element and its descendants.

    Only relative-path references are passed to `relocate`; the empty
    reference, fragment-only references, absolute paths and absolute URIs
    are left alone. A `None` result leaves the reference unchanged.
    """
    attribute = REFERENCE_ATTRIBUTES.get(element.tag)
    if attribute is not None:
        reference = element.get(attribute)
        if reference is not None and is_relative_path_reference(reference):
            relocated = relocate(reference)
            if relocated is not None:
                element.set(attribute, relocated)
    transform_children(element, lambda child: relocate_element(child, relocate))
    return [element]


def find_excerpt(root: etree._Element) -> etree._Element | None:
    """Return the first paragraph with text inside the page content, if any."""
    content = find_content_element(root)
    if content is None:
        return None
    for paragraph in content.iter(xhtml("p")):
        if element_text(paragraph).strip():
            return paragraph
    return None
