"""Source document loaders.

Each loader parses one source format into an lxml tree whose elements are in
the XHTML namespace, with mummy control elements and attributes in the mummy
namespace. Parsers are created per call and never shared.

Key classes:
- XhtmlLoader: Well-formed XHTML through the lxml XML parser.
- HtmlLoader: HTML through lxml.html, converted to XHTML elements.
- MarkdownLoader: YAML front matter plus mistune Markdown with Pygments highlighting.

Key functions:
- extract_head_metadata: Description properties from `<title>` and `<meta>` elements.
- split_front_matter: Separate YAML front matter from Markdown text.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import lxml.html
import mistune
import yaml
from lxml import etree
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .description import parse_metadata_property_value
from .dom import (
    DOCUMENT_NSMAP,
    XLINK_NAMESPACE,
    XML_NAMESPACE,
    child_elements,
    find_head,
    find_title_text,
    is_element,
    xhtml,
)
from .errors import ParseError
from .vocab import (
    ADHOC_NAMESPACE,
    MUMMY_NAMESPACE,
    PREDEFINED_VOCABULARIES,
    TITLE,
    handle_to_tag,
    kebab_to_camel,
    parse_prefix_declarations,
    tag_from_curie,
)

logger = logging.getLogger(__name__)

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)

_ATTRIBUTE_PREFIXES = {
    "mummy": MUMMY_NAMESPACE,
    "xml": XML_NAMESPACE,
    "xlink": XLINK_NAMESPACE,
}


class XhtmlLoader:
    """Loads well-formed XHTML documents."""

    def load(self, data: bytes, name: str) -> etree._Element:
        parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)
        try:
            root = etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise ParseError(f"Invalid XHTML: {exc}") from exc
        if root.tag != xhtml("html"):
            raise ParseError(f"Document element of {name} is not an XHTML html element")
        return root


class HtmlLoader:
    """Loads HTML documents, converting them to XHTML-namespaced trees."""

    def load(self, data: bytes, name: str) -> etree._Element:
        try:
            document = lxml.html.document_fromstring(data)
        except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
            raise ParseError(f"Invalid HTML in {name}: {exc}") from exc
        return html_to_xhtml(document)


def _convert_tag(tag: str) -> str:
    prefix, separator, local_name = tag.rpartition(":")
    if separator and prefix.lower() == "mummy":
        return f"{{{MUMMY_NAMESPACE}}}{local_name}"
    return xhtml(local_name.lower() if separator else tag)


def _convert_attribute(name: str) -> str | None:
    prefix, separator, local_name = name.partition(":")
    if not separator:
        return None if name == "xmlns" else name
    if prefix == "xmlns":
        return None
    namespace = _ATTRIBUTE_PREFIXES.get(prefix.lower())
    if namespace is None:
        logger.debug(f"Dropping attribute with unknown prefix: {name}")
        return None
    return f"{{{namespace}}}{local_name}"


def html_to_xhtml(element: etree._Element, nsmap: dict | None = DOCUMENT_NSMAP) -> etree._Element:
    """Copy an lxml.html element tree into XHTML-namespaced elements.

    HTML has no namespaces, so `mummy:` prefixed element and attribute names
    are mapped to the mummy namespace here.
    """
    converted = etree.Element(_convert_tag(element.tag), nsmap=nsmap)
    for attribute, value in element.attrib.items():
        converted_name = _convert_attribute(attribute)
        if converted_name is not None:
            converted.set(converted_name, value)
    converted.text = element.text
    previous: etree._Element | None = None
    for child in element:
        if is_element(child):
            copied = html_to_xhtml(child, nsmap=None)
        elif child.tag is etree.Comment:
            copied = etree.Comment(child.text)
        else:
            # Processing instructions and entities carry only their tail over.
            if child.tail:
                if previous is None:
                    converted.text = (converted.text or "") + child.tail
                else:
                    previous.tail = (previous.tail or "") + child.tail
            continue
        copied.tail = child.tail
        converted.append(copied)
        previous = copied
    return converted


def extract_head_metadata(root: etree._Element) -> list[tuple[str, Any]]:
    """Extract description properties from a page head.

    `<title>` gives the title. `<meta name>` gives ad hoc properties
    (`published-on` becomes `publishedOn`) or, for known prefixes such as
    `mummy:template`, vocabulary properties. `<meta property>` values are
    CURIEs resolved through the predefined vocabularies and any `prefix`
    declarations on the document.

    Raises:
        ParseError: If a `<meta property>` uses an unknown prefix.
    """
    head = find_head(root)
    if head is None:
        return []
    vocabularies = dict(PREDEFINED_VOCABULARIES)
    for element in (root, head):
        declared = element.get("prefix")
        if declared:
            vocabularies.update(parse_prefix_declarations(declared))

    properties: list[tuple[str, Any]] = []
    title = find_title_text(head)
    if title:
        properties.append((TITLE, title))
    for meta in child_elements(head, "meta"):
        content = meta.get("content")
        if content is None:
            continue
        property_name = meta.get("property")
        name = meta.get("name")
        if property_name:
            try:
                tag = tag_from_curie(property_name.strip(), vocabularies)
            except ValueError as exc:
                raise ParseError(str(exc)) from exc
        elif name:
            name = name.strip()
            prefix = name.partition(":")[0]
            if ":" in name and prefix in vocabularies:
                tag = tag_from_curie(name, vocabularies)
            elif ":" in name:
                tag = ADHOC_NAMESPACE + name
            else:
                tag = ADHOC_NAMESPACE + kebab_to_camel(name)
        else:
            continue
        properties.append((tag, parse_metadata_property_value(tag, content)))
    return properties


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Separate YAML front matter from Markdown text.

    Args:
        text: Raw Markdown source.

    Returns:
        Tuple of (front matter mapping, remaining Markdown).

    Raises:
        ParseError: If the front matter is not a YAML mapping.
    """
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid front matter: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("Front matter must be a mapping")
    return data, text[match.end() :]


def front_matter_properties(front_matter: dict[str, Any]) -> list[tuple[str, Any]]:
    """Convert front matter keys (handles or CURIEs) to description properties.

    Raises:
        ParseError: If a key uses an unknown vocabulary prefix.
    """
    properties = []
    for key, value in front_matter.items():
        try:
            tag = handle_to_tag(str(key))
        except ValueError as exc:
            raise ParseError(str(exc)) from exc
        properties.append((tag, parse_metadata_property_value(tag, value)))
    return properties


class _HighlightRenderer(mistune.HTMLRenderer):
    """Markdown renderer with Pygments syntax highlighting for fenced code."""

    def __init__(self):
        super().__init__(escape=False)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Args:
            code: The code content.
            info: Language identifier (e.g., 'python', 'javascript').

        Returns:
            HTML string with highlighted code.
        """
        language = info.split()[0] if info and info.strip() else None
        if language:
            try:
                lexer = get_lexer_by_name(language, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{language}"' if language else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownLoader:
    """Loads Markdown documents with optional YAML front matter.

    The Markdown body becomes the document body; front matter is read
    separately by `load_metadata` since it is description metadata.
    """

    def _decode(self, data: bytes, name: str) -> str:
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseError(f"{name} is not UTF-8: {exc}") from exc

    def load(self, data: bytes, name: str) -> etree._Element:
        _, body_text = split_front_matter(self._decode(data, name))
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(), plugins=["strikethrough", "footnotes", "table", "url"]
        )
        body_html = markdown(body_text)
        try:
            document = lxml.html.document_fromstring(
                f"<html><head><title></title></head><body>{body_html}</body></html>"
            )
        except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
            raise ParseError(f"Invalid HTML generated from {name}: {exc}") from exc
        return html_to_xhtml(document)

    def load_metadata(self, data: bytes, name: str) -> list[tuple[str, Any]]:
        front_matter, _ = split_front_matter(self._decode(data, name))
        return front_matter_properties(front_matter)
