"""Property vocabularies for artifact descriptions.

A description property is identified by a tag: an absolute URI made of a
namespace (ending in `/` or `#`) followed by a name. Page metadata refers to
tags through handles (`title`, `publishedOn`) or CURIEs (`og:title`).

Key classes:
- VocabularyRegistrar: Per-document prefix registry used when writing RDFa.

Key functions:
- handle_to_tag: Resolve a handle or CURIE to a tag.
- find_namespace / find_name: Split a tag.
- camel_to_kebab / kebab_to_camel: Convert property names for HTML meta names.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType

ADHOC_NAMESPACE = "https://urf.name/"
CONTENT_NAMESPACE = "https://urf.name/content/"
MUMMY_NAMESPACE = "https://guise.io/name/mummy/"

TITLE = ADHOC_NAMESPACE + "title"
LABEL = ADHOC_NAMESPACE + "label"
NAME = ADHOC_NAMESPACE + "name"
ICON = ADHOC_NAMESPACE + "icon"
PUBLISHED_ON = ADHOC_NAMESPACE + "publishedOn"

CONTENT_TYPE = CONTENT_NAMESPACE + "type"
CONTENT_MODIFIED_AT = CONTENT_NAMESPACE + "modifiedAt"
CONTENT_FINGERPRINT = CONTENT_NAMESPACE + "fingerprint"

MUMMY_TEMPLATE = MUMMY_NAMESPACE + "template"
MUMMY_ORDER = MUMMY_NAMESPACE + "order"
MUMMY_ASPECT = MUMMY_NAMESPACE + "aspect"
MUMMY_SOURCE_MODIFIED_AT = MUMMY_NAMESPACE + "sourceContentModifiedAt"
MUMMY_DESCRIPTION_DIRTY = MUMMY_NAMESPACE + "descriptionDirty"
MUMMY_GENERATOR = MUMMY_NAMESPACE + "generator"
MUMMY_GENERATED_AT = MUMMY_NAMESPACE + "generatedAt"

# Namespaces whose properties never appear in generated page metadata.
UNASCRIBED_NAMESPACES = frozenset({MUMMY_NAMESPACE, CONTENT_NAMESPACE})

PREDEFINED_VOCABULARIES: Mapping[str, str] = MappingProxyType(
    {
        "mummy": MUMMY_NAMESPACE,
        "content": CONTENT_NAMESPACE,
        "dc": "http://purl.org/dc/terms/",
        "og": "http://ogp.me/ns#",
        "schema": "http://schema.org/",
        "foaf": "http://xmlns.com/foaf/0.1/",
        "xsd": "http://www.w3.org/2001/XMLSchema#",
    }
)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def find_namespace(tag: str) -> str:
    """Return the namespace of a tag, including its trailing delimiter.

    Args:
        tag: Absolute tag URI.

    Returns:
        Everything up to and including the last `/` or `#`.

    Raises:
        ValueError: If the tag has no namespace delimiter.
    """
    index = max(tag.rfind("/"), tag.rfind("#"))
    if index < 0 or index == len(tag) - 1:
        raise ValueError(f"Tag has no name within a namespace: {tag!r}")
    return tag[: index + 1]


def find_name(tag: str) -> str:
    """Return the name of a tag within its namespace."""
    return tag[len(find_namespace(tag)) :]


def parse_curie(text: str) -> tuple[str, str]:
    """Split a compact URI such as `og:title` into prefix and reference.

    Raises:
        ValueError: If the text has no prefix.
    """
    prefix, separator, reference = text.partition(":")
    if not separator or not prefix or not reference:
        raise ValueError(f"Not a CURIE: {text!r}")
    return prefix, reference


def tag_from_curie(
    curie: str, vocabularies: Mapping[str, str] = PREDEFINED_VOCABULARIES
) -> str:
    """Resolve a CURIE to a tag using the given prefix mapping.

    Raises:
        ValueError: If the prefix is not a known vocabulary.
    """
    prefix, reference = parse_curie(curie)
    namespace = vocabularies.get(prefix)
    if namespace is None:
        raise ValueError(f"Unknown vocabulary prefix {prefix!r} in {curie!r}")
    return namespace + kebab_to_camel(reference)


def handle_to_tag(
    handle: str, vocabularies: Mapping[str, str] = PREDEFINED_VOCABULARIES
) -> str:
    """Resolve a property handle to its tag.

    A plain handle (`title`, `published-on`) lives in the ad hoc namespace; a
    CURIE (`og:title`) is resolved through the vocabulary mapping.

    Args:
        handle: Plain name or CURIE.
        vocabularies: Known prefix to namespace mapping.

    Returns:
        Absolute tag URI.

    Raises:
        ValueError: If the handle is a CURIE with an unknown prefix.
    """
    if ":" in handle:
        return tag_from_curie(handle, vocabularies)
    return ADHOC_NAMESPACE + kebab_to_camel(handle)


def camel_to_kebab(name: str) -> str:
    """Convert `publishedOn` to `published-on`."""
    return _CAMEL_BOUNDARY_RE.sub("-", name).lower()


def kebab_to_camel(name: str) -> str:
    """Convert `published-on` to `publishedOn`; other names pass through."""
    if "-" not in name:
        return name
    first, *rest = name.split("-")
    return first + "".join(part[:1].upper() + part[1:] for part in rest)


def parse_prefix_declarations(value: str) -> dict[str, str]:
    """Parse an RDFa `prefix` attribute value (`og: http://ogp.me/ns# ...`)."""
    tokens = value.split()
    declarations: dict[str, str] = {}
    for prefix_token, namespace in zip(tokens[::2], tokens[1::2]):
        if prefix_token.endswith(":"):
            declarations[prefix_token[:-1]] = namespace
    return declarations


class VocabularyRegistrar:
    """Assigns prefixes to namespaces for one generated document.

    Predefined vocabularies keep their conventional prefix; any other
    namespace gets a generated `ns1`, `ns2`... prefix. A registrar is created
    per document and is never shared.
    """

    def __init__(self, known: Mapping[str, str] = PREDEFINED_VOCABULARIES):
        self._known_prefixes = {namespace: prefix for prefix, namespace in known.items()}
        self._prefixes: dict[str, str] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._prefixes)

    def register(self, namespace: str) -> str:
        """Register a namespace and return the prefix it is written with."""
        prefix = self._prefixes.get(namespace)
        if prefix is not None:
            return prefix
        prefix = self._known_prefixes.get(namespace)
        used = set(self._prefixes.values())
        if prefix is None or prefix in used:
            prefix = self._next_generated_prefix(used)
        self._prefixes[namespace] = prefix
        return prefix

    def _next_generated_prefix(self, used: set[str]) -> str:
        while True:
            self._counter += 1
            prefix = f"ns{self._counter}"
            if prefix not in used:
                return prefix

    def curie_for(self, tag: str) -> str:
        """Return the `prefix:kebab-name` CURIE for a tag, registering its namespace."""
        prefix = self.register(find_namespace(tag))
        return f"{prefix}:{camel_to_kebab(find_name(tag))}"

    def prefix_attribute(self) -> str:
        """Render the registered prefixes as an RDFa `prefix` attribute value."""
        return " ".join(
            f"{prefix}: {namespace}" for namespace, prefix in self._prefixes.items()
        )
